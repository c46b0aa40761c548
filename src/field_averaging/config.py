"""Global configuration for field-averaging.

This module provides a package-wide configuration surface: the logging level,
environment helpers, and the numerical settings shared by every averaging
method (division floor, degenerate-volume policy, output location). Settings
default from the environment and can be swapped temporarily with `use`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import contextlib
import logging
import os
from typing import Any, Iterator, Mapping, Optional


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("field_averaging.config")
_PACKAGE_LOGGER = logging.getLogger("field_averaging")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


def _level_from_env() -> None:
    """Apply FIELD_AVERAGING_LOGLEVEL to the package logger when it is set."""
    val = os.getenv("FIELD_AVERAGING_LOGLEVEL")
    if val is not None:
        set_log_level(val)


# The package logger is left to the root configuration unless the env asks.
_level_from_env()


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def float_env(varname: str, default: float) -> float:
    """Read an environment variable and interpret it as a float."""
    return float(os.getenv(varname, repr(default)))


# -----------------------------------------------------------------------------
# Numerical settings
# -----------------------------------------------------------------------------
#: Smallest divisor used by weighted averaging.
SMALL = 1e-15

DEGENERATE_POLICIES = ("warn", "ignore", "raise")


@dataclass(frozen=True)
class AveragingSettings:
    """Numerical and output settings shared by all averaging methods.

    Attributes:
        eps: Floor applied to weights in `AveragingMethod.average(weight)`.
        degenerate: What to do when a normalizing volume is zero:
            'warn' logs a warning, 'ignore' stays silent, 'raise' raises
            `DegenerateSampleError`. Affected entries are left at zero
            unless the policy raises.
        output_dir: Root directory used by the default field writer.
        time_name: Default time directory name for written fields.
    """

    eps: float = SMALL
    degenerate: str = "warn"
    output_dir: str = "postProcessing"
    time_name: str = "0"

    def __post_init__(self) -> None:
        if not self.eps > 0.0:
            raise ValueError(f"eps must be positive, got {self.eps!r}")
        if self.degenerate not in DEGENERATE_POLICIES:
            raise ValueError(
                f"degenerate must be one of {DEGENERATE_POLICIES}, "
                f"got {self.degenerate!r}"
            )


def _settings_from_env() -> AveragingSettings:
    """Build settings from FIELD_AVERAGING_* environment variables."""
    s = AveragingSettings(
        eps=float_env("FIELD_AVERAGING_EPS", SMALL),
        degenerate=os.getenv("FIELD_AVERAGING_DEGENERATE", "warn").strip().lower(),
        output_dir=os.getenv("FIELD_AVERAGING_OUTPUT_DIR", "postProcessing"),
        time_name=os.getenv("FIELD_AVERAGING_TIME", "0"),
    )
    _LOGGER.debug("Settings from environment: %s", s)
    return s


_SETTINGS: AveragingSettings = _settings_from_env()


def settings() -> AveragingSettings:
    """Return the active settings."""
    return _SETTINGS


def configure(**changes: Any) -> AveragingSettings:
    """Replace fields of the active settings.

    Args:
        **changes: Any `AveragingSettings` field (eps, degenerate,
            output_dir, time_name).

    Returns:
        The new active settings.
    """
    global _SETTINGS
    _SETTINGS = replace(_SETTINGS, **changes)
    _LOGGER.info("Reconfigured averaging settings: %s", _SETTINGS)
    return _SETTINGS


@contextlib.contextmanager
def use(**changes: Any) -> Iterator[AveragingSettings]:
    """Temporarily change settings within a context manager.

    Args:
        **changes: Fields to override for the duration of the block.

    Yields:
        The temporary settings. The previous settings are restored on exit.
    """
    global _SETTINGS
    prev = _SETTINGS
    try:
        yield configure(**changes)
    finally:
        _SETTINGS = prev
        _LOGGER.info("Restored previous averaging settings: %s", _SETTINGS)


# -----------------------------------------------------------------------------
# Dictionaries
# -----------------------------------------------------------------------------
def lookup(dict_: Mapping[str, Any], key: str, default: Optional[Any] = None) -> Any:
    """Look up `key` in a configuration dictionary.

    Args:
        dict_: The configuration mapping.
        key: Entry to read.
        default: Value returned when `key` is absent. When None, a missing
            key is an error.

    Returns:
        The stored value, or `default`.

    Raises:
        KeyError: If `key` is missing and no default was given.
    """
    if key in dict_:
        return dict_[key]
    if default is not None:
        return default
    _LOGGER.error("Entry %r not found in dictionary with keys %s", key, sorted(dict_))
    raise KeyError(f"keyword {key!r} is undefined in dictionary {sorted(dict_)}")
