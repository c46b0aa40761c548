"""Value/gradient type pairs for averaged fields.

Every averaged quantity has a value type and a gradient type derived from it
by adding one spatial dimension: a scalar has a vector gradient, a vector a
tensor gradient. `FieldKind` binds the two so buffers, interpolation results
and output fields agree on their shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from numpy.typing import NDArray

#: Number of spatial dimensions.
DIM = 3


@dataclass(frozen=True)
class FieldKind:
    """Shape binding between a field value and its gradient.

    Attributes:
        name: Short name of the value type ('scalar', 'vector', 'tensor').
        shape: Per-element value shape, e.g. () or (3,).
    """

    name: str
    shape: Tuple[int, ...]

    @property
    def grad_shape(self) -> Tuple[int, ...]:
        """Per-element gradient shape: one leading spatial axis."""
        return (DIM,) + self.shape

    def zeros(self, n: int) -> NDArray[Any]:
        """Return a zero value array for `n` elements."""
        return np.zeros((n,) + self.shape, dtype=float)

    def grad_zeros(self, n: int) -> NDArray[Any]:
        """Return a zero gradient array for `n` elements."""
        return np.zeros((n,) + self.grad_shape, dtype=float)


SCALAR = FieldKind("scalar", ())
VECTOR = FieldKind("vector", (DIM,))
TENSOR = FieldKind("tensor", (DIM, DIM))