"""Cell-and-point averaging method with linear interpolation per tetrahedron."""

from __future__ import annotations

from typing import Any, Mapping
from numpy.typing import NDArray

import numpy as np

from ..averaging_method import AveragingMethod
from ..field_types import SCALAR, FieldKind
from ..mesh import PolyMesh, TetIndices
from ..registry import register_averaging_method


@register_averaging_method("dual")
class Dual(AveragingMethod):
    """Store values at cell centres and at points.

    Inside a tetrahedron (cell centre, base, a, b) the value is the linear
    blend of the cell value and the three point values with the barycentric
    coordinates of the sample point, so the gradient is constant per
    tetrahedron.

    Regions:
        0: cells (n_cells).
        1: points (n_points).
    """

    def __init__(
        self,
        name: str,
        config: Mapping[str, Any],
        mesh: PolyMesh,
        kind: FieldKind = SCALAR,
    ) -> None:
        super().__init__(name, config, mesh, [mesh.n_cells, mesh.n_points], kind)

    @property
    def data_cell(self) -> NDArray[Any]:
        """Cell-centre values."""
        return self.fields[0]

    @property
    def data_point(self) -> NDArray[Any]:
        """Point values."""
        return self.fields[1]

    def _corner_values(self, tet: TetIndices) -> NDArray[Any]:
        base, a, b = self.mesh.tet_point_labels(tet)
        pts = self.data_point
        return np.stack((self.data_cell[tet.cell], pts[base], pts[a], pts[b]))

    def interpolate(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        weights = self.mesh.tet_barycentric(point, tet)
        return np.tensordot(weights, self._corner_values(tet), axes=1)

    def interpolate_grad(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        grads = self.mesh.tet_barycentric_grads(tet)  # (4, 3)
        return np.tensordot(grads.T, self._corner_values(tet), axes=1)

    def primitive_field(self) -> NDArray[Any]:
        return self.data_cell
