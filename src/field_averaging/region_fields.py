"""Module defining RegionFields, an ordered store of per-region buffers.

Each region (e.g. the cells of a mesh, or its points) owns one numpy buffer
of values. Buffer count and sizes are fixed at construction; contents are
mutated in place through explicit methods.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, List, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np

from .exceptions import ShapeMismatchError
from .field_types import SCALAR, FieldKind

_LOGGER = logging.getLogger(__name__)


class RegionFields:
    """Ordered sequence of zero-initialized value buffers, one per region.

    Args:
        sizes (Sequence[int]): Number of elements of each region.
        kind (FieldKind): Value type of every element.

    Attributes:
        kind (FieldKind): Value type of every element.
    """

    def __init__(self, sizes: Sequence[int], kind: FieldKind = SCALAR) -> None:
        sizes_list = [int(s) for s in sizes]
        if any(s < 0 for s in sizes_list):
            raise ValueError(f"region sizes must be non-negative, got {sizes_list}")
        self.kind = kind
        self._buffers: List[NDArray[Any]] = [kind.zeros(s) for s in sizes_list]
        _LOGGER.debug(
            "RegionFields: allocated %d %s buffer(s) of sizes %s",
            len(sizes_list),
            kind.name,
            sizes_list,
        )

    @property
    def sizes(self) -> Tuple[int, ...]:
        """Number of elements of each region."""
        return tuple(b.shape[0] for b in self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    def __getitem__(self, region: int) -> NDArray[Any]:
        """Return the buffer of `region` (a view; writes go to the store)."""
        return self._buffers[region]

    def __iter__(self) -> Iterator[NDArray[Any]]:
        return iter(self._buffers)

    def same_layout(self, other: RegionFields) -> bool:
        """Return True if `other` has the same region count and sizes."""
        return self.sizes == other.sizes

    def copy(self) -> RegionFields:
        """Return a deep copy of the store."""
        new = RegionFields.__new__(RegionFields)
        new.kind = self.kind
        new._buffers = [b.copy() for b in self._buffers]
        return new

    def fill(self, value: Any = 0.0) -> None:
        """Set every element of every buffer to `value`."""
        for b in self._buffers:
            b[...] = value

    def divide_by(self, other: RegionFields, floor: float = 0.0) -> None:
        """Divide every element in place by the matching element of `other`.

        Args:
            other (RegionFields): Scalar store with the same layout.
            floor (float): Lower bound applied to each divisor, so the
                divisor used is max(other_element, floor).

        Raises:
            ShapeMismatchError: If `other` is not scalar or its layout
                differs from this store.
        """
        if other.kind.shape != ():
            raise ShapeMismatchError(
                f"divisor must be scalar, got {other.kind.name} buffers"
            )
        if not self.same_layout(other):
            _LOGGER.error(
                "divide_by: layout mismatch %s vs %s", self.sizes, other.sizes
            )
            raise ShapeMismatchError(
                f"region layout {other.sizes} does not match {self.sizes}"
            )
        extra = (1,) * len(self.kind.shape)
        for b, w in zip(self._buffers, other._buffers):
            divisor = np.maximum(w, floor).reshape(w.shape + extra)
            b /= divisor

    def __repr__(self) -> str:
        return f"RegionFields(kind={self.kind.name}, sizes={list(self.sizes)})"
