"""Exceptions raised by field-averaging."""

from __future__ import annotations

from typing import Sequence


class AveragingError(Exception):
    """Base class for field-averaging errors."""


class UnknownAveragingMethodError(AveragingError, KeyError):
    """A configuration names an averaging method absent from the registry."""

    def __init__(self, type_name: str, valid: Sequence[str]) -> None:
        self.type_name = type_name
        self.valid = list(valid)
        super().__init__(
            f"Unknown averaging method {type_name!r}. "
            f"Valid averaging methods are: {', '.join(self.valid) or '(none)'}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class ShapeMismatchError(AveragingError, ValueError):
    """Two region field stores do not share the same layout."""


class DegenerateSampleError(AveragingError, ArithmeticError):
    """A normalizing volume was zero while the 'raise' policy is active."""
