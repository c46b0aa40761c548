"""Name-keyed registry of averaging method classes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Type, TypeVar

from .exceptions import UnknownAveragingMethodError

if TYPE_CHECKING:
    from .averaging_method import AveragingMethod

_LOGGER = logging.getLogger(__name__)

_REGISTRY: Dict[str, Type["AveragingMethod"]] = {}

M = TypeVar("M", bound=Type["AveragingMethod"])


def register_averaging_method(type_name: str) -> Callable[[M], M]:
    """Class decorator registering an averaging method under `type_name`.

    The name is also stored on the class as `TYPE_NAME`.

    Raises:
        ValueError: If `type_name` is empty or already taken by another class.
    """
    if not type_name:
        raise ValueError("averaging method type name must be non-empty")

    def decorator(cls: M) -> M:
        existing = _REGISTRY.get(type_name)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"averaging method {type_name!r} already registered "
                f"by {existing.__name__}"
            )
        cls.TYPE_NAME = type_name
        _REGISTRY[type_name] = cls
        _LOGGER.debug("Registered averaging method %r -> %s", type_name, cls.__name__)
        return cls

    return decorator


def unregister_averaging_method(type_name: str) -> None:
    """Remove `type_name` from the registry if present."""
    _REGISTRY.pop(type_name, None)


def averaging_method_names() -> List[str]:
    """Return the sorted names of all registered averaging methods."""
    return sorted(_REGISTRY)


def lookup_averaging_method(type_name: str) -> Type["AveragingMethod"]:
    """Return the class registered under `type_name`.

    Raises:
        UnknownAveragingMethodError: If no class is registered under that name.
    """
    try:
        return _REGISTRY[type_name]
    except KeyError:
        valid = averaging_method_names()
        _LOGGER.error(
            "Unknown averaging method %r; valid averaging methods are %s",
            type_name,
            valid,
        )
        raise UnknownAveragingMethodError(type_name, valid) from None
