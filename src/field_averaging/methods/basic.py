"""Cell-constant averaging method."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from numpy.typing import NDArray

from ..averaging_method import AveragingMethod
from ..field_types import SCALAR, FieldKind
from ..mesh import PolyMesh, TetIndices
from ..operators import cell_gradient
from ..registry import register_averaging_method

_LOGGER = logging.getLogger(__name__)


@register_averaging_method("basic")
class Basic(AveragingMethod):
    """Store one value per cell; the value is constant inside the cell.

    The gradient is the Gauss gradient of the cell values with
    zero-gradient boundaries, cached by `update_grad`.

    Regions:
        0: cells (n_cells).
    """

    def __init__(
        self,
        name: str,
        config: Mapping[str, Any],
        mesh: PolyMesh,
        kind: FieldKind = SCALAR,
    ) -> None:
        super().__init__(name, config, mesh, [mesh.n_cells], kind)
        self.data_grad: NDArray[Any] = kind.grad_zeros(mesh.n_cells)

    def _copy_state(self, other: AveragingMethod) -> None:
        self.data_grad = self.data_grad.copy()

    @property
    def data(self) -> NDArray[Any]:
        """Cell values."""
        return self.fields[0]

    def update_grad(self) -> None:
        self.data_grad = cell_gradient(self.mesh, self.data)
        _LOGGER.debug("Basic '%s': refreshed cell gradient", self.name)

    def average(self, weight: Optional[AveragingMethod] = None) -> None:
        super().average(weight)
        if weight is not None:
            # the cached gradient must follow the divided values
            self.update_grad()

    def interpolate(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        return self.data[tet.cell]

    def interpolate_grad(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        return self.data_grad[tet.cell]

    def primitive_field(self) -> NDArray[Any]:
        return self.data
