"""Module defining the PolyMesh class for 3D polyhedral volume meshes.

This module provides:
  - Construction from points and meshio-style cell blocks, or any
    meshio-readable file.
  - Face/cell topology with owner/neighbour addressing.
  - Face centres and area vectors, cell centres and volumes.
  - Tetrahedral decomposition of cells and per-tetrahedron geometry
    (volume, barycentric coordinates and their gradients).

Designed as the mesh adapter driving the averaging accumulation pass.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np
import meshio

_LOGGER = logging.getLogger(__name__)

# Outward faces per cell shape, in meshio/VTK node ordering.
_FACE_TEMPLATES: Dict[str, Tuple[Tuple[int, ...], ...]] = {
    "tetra": ((0, 2, 1), (0, 1, 3), (1, 2, 3), (0, 3, 2)),
    "pyramid": ((0, 3, 2, 1), (0, 1, 4), (1, 2, 4), (2, 3, 4), (3, 0, 4)),
    "wedge": ((0, 1, 2), (3, 5, 4), (0, 3, 4, 1), (1, 4, 5, 2), (2, 5, 3, 0)),
    "hexahedron": (
        (0, 3, 2, 1),
        (4, 5, 6, 7),
        (0, 1, 5, 4),
        (1, 2, 6, 5),
        (2, 3, 7, 6),
        (3, 0, 4, 7),
    ),
}
_N_NODES: Dict[str, int] = {"tetra": 4, "pyramid": 5, "wedge": 6, "hexahedron": 8}

_VSMALL = 1e-300

# Volumes below this fraction of the cubed length scale count as zero.
_FLAT_TOL = 1e-12


@dataclass(frozen=True)
class TetIndices:
    """Identify one tetrahedron of a cell's decomposition.

    The tetrahedron is spanned by the cell centre and three vertices of one
    of the cell's faces. The last three entries are positions inside the
    face's vertex list, not global point labels.

    Attributes:
        cell (int): Cell the tetrahedron belongs to.
        face (int): Face the tetrahedron is anchored on.
        face_base_pt (int): Local index of the face base vertex.
        face_pt_a (int): Local index of the second face vertex.
        face_pt_b (int): Local index of the third face vertex.
    """

    cell: int
    face: int
    face_base_pt: int
    face_pt_a: int
    face_pt_b: int


def tet_signed_volume(a: Any, b: Any, c: Any, d: Any) -> float:
    """Return the signed volume of tetrahedron (a, b, c, d)."""
    return float(np.dot(np.cross(b - a, c - a), d - a)) / 6.0


def is_flat(volume: float, pts: NDArray[Any]) -> bool:
    """Return True if `volume` is negligible for a body spanning `pts`.

    The length scale is the bounding-box diagonal of `pts`, so the test is
    independent of the mesh units.
    """
    scale = float(np.linalg.norm(np.ptp(pts, axis=0)))
    return abs(volume) <= _FLAT_TOL * scale**3


class PolyMesh:
    """Handle 3D polyhedral volume meshes.

    Cells are given as meshio-style blocks of tetrahedra, pyramids, wedges
    and hexahedra. Faces are shared between the two cells on either side;
    the first cell to reference a face owns it and its vertex order is
    chosen so the face area vector points out of the owner.

    Args:
        points (NDArray[Any]): Point coordinates (n_points×3).
        cells (Sequence[Tuple[str, NDArray[Any]]]): Cell blocks as
            (cell_type, connectivity) pairs.

    Attributes:
        points (NDArray[Any]): Point coordinates, shape (n_points, 3).
        cell_blocks (List[Tuple[str, NDArray[Any]]]): The input cell blocks.
        faces (List[Tuple[int, ...]]): Vertex labels of every face.
        owner (NDArray[Any]): Owner cell of every face, shape (n_faces,).
        neighbour (NDArray[Any]): Neighbour cell of every face, -1 on the
            boundary, shape (n_faces,).
        cell_faces (List[List[int]]): Faces of every cell.
        face_centres (NDArray[Any]): Face centres, shape (n_faces, 3).
        face_areas (NDArray[Any]): Face area vectors, shape (n_faces, 3).
        cell_centres (NDArray[Any]): Cell centroids, shape (n_cells, 3).
        cell_volumes (NDArray[Any]): Cell volumes, shape (n_cells,).
    """

    points: NDArray[Any]
    cell_blocks: List[Tuple[str, NDArray[Any]]]
    faces: List[Tuple[int, ...]]
    owner: NDArray[Any]
    neighbour: NDArray[Any]
    cell_faces: List[List[int]]
    face_centres: NDArray[Any]
    face_areas: NDArray[Any]
    cell_centres: NDArray[Any]
    cell_volumes: NDArray[Any]

    def __init__(
        self,
        points: NDArray[Any],
        cells: Sequence[Tuple[str, NDArray[Any]]],
    ) -> None:
        """Build topology and geometry from points and cell blocks.

        Raises:
            ValueError: If points are not (n, 3), a cell type is unsupported,
                connectivity has the wrong width or references a missing
                point, or a face is shared by more than two cells.
        """
        self.points = np.asarray(points, dtype=float)
        if self.points.ndim != 2 or self.points.shape[1] != 3:
            _LOGGER.error("PolyMesh: points must be (n, 3), got %s", self.points.shape)
            raise ValueError(f"points must have shape (n, 3), got {self.points.shape}")

        self.cell_blocks = []
        for cell_type, conn in cells:
            if cell_type not in _FACE_TEMPLATES:
                _LOGGER.error("PolyMesh: unsupported cell type %r", cell_type)
                raise ValueError(
                    f"Unsupported cell type {cell_type!r}; "
                    f"expected one of {sorted(_FACE_TEMPLATES)}"
                )
            conn_arr = np.asarray(conn, dtype=int).reshape(-1, _N_NODES[cell_type])
            if conn_arr.size and (
                conn_arr.min() < 0 or conn_arr.max() >= self.points.shape[0]
            ):
                _LOGGER.error("PolyMesh: %s connectivity out of range", cell_type)
                raise ValueError(
                    f"{cell_type} connectivity references points outside "
                    f"[0, {self.points.shape[0]})"
                )
            self.cell_blocks.append((cell_type, conn_arr))

        self._build_topology()
        self._build_geometry()

        _LOGGER.info(
            "PolyMesh initialized with %d points, %d faces (%d internal) and %d cells",
            self.n_points,
            self.n_faces,
            self.n_internal_faces,
            self.n_cells,
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_meshio(cls, mesh: meshio.Mesh) -> PolyMesh:
        """Build a PolyMesh from the volume cell blocks of a meshio mesh.

        Blocks of other types (lines, triangles, ...) are skipped.

        Raises:
            ValueError: If the mesh holds no supported volume cells.
        """
        blocks: List[Tuple[str, NDArray[Any]]] = []
        for block in mesh.cells:
            if block.type in _FACE_TEMPLATES:
                blocks.append((block.type, block.data))
            else:
                _LOGGER.debug("from_meshio: skipping %d %s cells", len(block.data), block.type)
        if not blocks:
            raise ValueError(
                f"mesh has no volume cells of types {sorted(_FACE_TEMPLATES)}"
            )
        return cls(mesh.points, blocks)

    @classmethod
    def read(cls, filename: str) -> PolyMesh:
        """Read a volume mesh from any meshio-supported file."""
        _LOGGER.info("Reading mesh from %s", filename)
        return cls.from_meshio(meshio.read(filename))

    def to_meshio(self) -> meshio.Mesh:
        """Return the mesh as a meshio Mesh with the original cell blocks."""
        return meshio.Mesh(points=self.points, cells=list(self.cell_blocks))

    def _build_topology(self) -> None:
        """Deduplicate faces and assign owner/neighbour cells."""
        face_index: Dict[Tuple[int, ...], int] = {}
        faces: List[Tuple[int, ...]] = []
        owner: List[int] = []
        neighbour: List[int] = []
        cell_faces: List[List[int]] = []

        celli = 0
        for cell_type, conn in self.cell_blocks:
            templates = _FACE_TEMPLATES[cell_type]
            for row in conn:
                this_cell: List[int] = []
                for tpl in templates:
                    verts = tuple(int(row[k]) for k in tpl)
                    key = tuple(sorted(verts))
                    facei = face_index.get(key)
                    if facei is None:
                        facei = len(faces)
                        face_index[key] = facei
                        faces.append(verts)
                        owner.append(celli)
                        neighbour.append(-1)
                    elif neighbour[facei] != -1 or owner[facei] == celli:
                        _LOGGER.error(
                            "PolyMesh: face %s already used by cells %d and %d",
                            verts,
                            owner[facei],
                            neighbour[facei],
                        )
                        raise ValueError(
                            f"face {verts} is shared by more than two cells"
                        )
                    else:
                        neighbour[facei] = celli
                    this_cell.append(facei)
                cell_faces.append(this_cell)
                celli += 1

        self.faces = faces
        self.owner = np.asarray(owner, dtype=int)
        self.neighbour = np.asarray(neighbour, dtype=int)
        self.cell_faces = cell_faces

    def _face_geometry(self, face: Sequence[int]) -> Tuple[NDArray[Any], NDArray[Any]]:
        """Return (centre, area vector) of a face by triangle fan."""
        pts = self.points[list(face)]
        if len(face) == 3:
            return pts.mean(axis=0), 0.5 * np.cross(pts[1] - pts[0], pts[2] - pts[0])

        estimate = pts.mean(axis=0)
        nxt = np.roll(pts, -1, axis=0)
        tri_areas = 0.5 * np.cross(pts - estimate, nxt - estimate)
        tri_centres = (pts + nxt + estimate) / 3.0
        mags = np.linalg.norm(tri_areas, axis=1)
        total = float(mags.sum())
        if total < _VSMALL:
            return estimate, np.zeros(3)
        centre = (mags[:, None] * tri_centres).sum(axis=0) / total
        return centre, tri_areas.sum(axis=0)

    def _build_geometry(self) -> None:
        """Compute face and cell geometry and orient faces out of their owner."""
        n_faces = len(self.faces)
        self.face_centres = np.zeros((n_faces, 3))
        self.face_areas = np.zeros((n_faces, 3))
        for facei, face in enumerate(self.faces):
            self.face_centres[facei], self.face_areas[facei] = self._face_geometry(face)

        # Centroid from the tet decomposition about the vertex average.
        n_cells = len(self.cell_faces)
        self.cell_centres = np.zeros((n_cells, 3))
        self.cell_volumes = np.zeros(n_cells)
        for celli, faces in enumerate(self.cell_faces):
            labels = sorted({p for facei in faces for p in self.faces[facei]})
            estimate = self.points[labels].mean(axis=0)
            vol_sum = 0.0
            weighted = np.zeros(3)
            for facei in faces:
                f = self.faces[facei]
                base = self.points[f[0]]
                for i in range(1, len(f) - 1):
                    a = self.points[f[i]]
                    b = self.points[f[i + 1]]
                    v = abs(tet_signed_volume(estimate, base, a, b))
                    vol_sum += v
                    weighted += v * (estimate + base + a + b) / 4.0
            if is_flat(vol_sum, self.points[labels]):
                self.cell_centres[celli] = estimate
            else:
                self.cell_centres[celli] = weighted / vol_sum

        # Flip faces whose area vector points into the owner.
        flipped = 0
        for facei, face in enumerate(self.faces):
            d = self.face_centres[facei] - self.cell_centres[self.owner[facei]]
            if float(np.dot(self.face_areas[facei], d)) < 0.0:
                self.faces[facei] = (face[0],) + tuple(reversed(face[1:]))
                self.face_areas[facei] = -self.face_areas[facei]
                flipped += 1
        if flipped:
            _LOGGER.debug("PolyMesh: reoriented %d face(s) to point out of owner", flipped)

        for celli in range(n_cells):
            self.cell_volumes[celli] = sum(
                self.tet_volume(tet)
                for tet in self.cell_tets(celli)
                if not self.tet_is_degenerate(tet)
            )

        degenerate = self.cell_volumes <= 0.0
        if np.any(degenerate):
            _LOGGER.warning(
                "PolyMesh: %d degenerate cell(s) with ~zero volume.",
                int(np.count_nonzero(degenerate)),
            )

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------
    @property
    def n_points(self) -> int:
        """Number of points."""
        return int(self.points.shape[0])

    @property
    def n_cells(self) -> int:
        """Number of cells."""
        return len(self.cell_faces)

    @property
    def n_faces(self) -> int:
        """Number of faces."""
        return len(self.faces)

    @property
    def n_internal_faces(self) -> int:
        """Number of faces shared by two cells."""
        return int(np.count_nonzero(self.neighbour >= 0))

    def face_vertices(self, face: int) -> Tuple[int, ...]:
        """Return the global point labels of `face`."""
        return self.faces[face]

    def is_internal_face(self, face: int) -> bool:
        """Return True if `face` has a neighbour cell."""
        return bool(self.neighbour[face] >= 0)

    # ------------------------------------------------------------------
    # Tetrahedral decomposition
    # ------------------------------------------------------------------
    def cell_tets(self, cell: int) -> List[TetIndices]:
        """Decompose a cell into tetrahedra anchored on its faces.

        Each face with n vertices contributes n - 2 tetrahedra built from
        the cell centre, the face base vertex (local index 0) and two
        consecutive face vertices. For the neighbour cell the two
        consecutive vertices are swapped so every tetrahedron is positively
        oriented as seen from its own cell.

        Args:
            cell (int): Cell index.

        Returns:
            List[TetIndices]: The decomposition, face by face.
        """
        tets: List[TetIndices] = []
        for facei in self.cell_faces[cell]:
            n = len(self.faces[facei])
            own = int(self.owner[facei]) == cell
            for i in range(1, n - 1):
                if own:
                    tets.append(TetIndices(cell, facei, 0, i, i + 1))
                else:
                    tets.append(TetIndices(cell, facei, 0, i + 1, i))
        return tets

    def tet_point_labels(self, tet: TetIndices) -> Tuple[int, int, int]:
        """Return the global labels of the three face vertices of `tet`."""
        f = self.faces[tet.face]
        return f[tet.face_base_pt], f[tet.face_pt_a], f[tet.face_pt_b]

    def tet_points(self, tet: TetIndices) -> NDArray[Any]:
        """Return the tetrahedron corners (centre, base, a, b), shape (4, 3)."""
        base, a, b = self.tet_point_labels(tet)
        return np.vstack(
            (
                self.cell_centres[tet.cell],
                self.points[base],
                self.points[a],
                self.points[b],
            )
        )

    def tet_volume(self, tet: TetIndices) -> float:
        """Return the (unsigned) volume of `tet`."""
        c, p0, pa, pb = self.tet_points(tet)
        return abs(tet_signed_volume(c, p0, pa, pb))

    def tet_is_degenerate(self, tet: TetIndices) -> bool:
        """Return True if `tet` is too flat to carry volume or barycentrics."""
        x = self.tet_points(tet)
        return is_flat(tet_signed_volume(*x), x)

    def _tet_inverse(self, tet: TetIndices) -> Tuple[NDArray[Any], NDArray[Any]]:
        """Return (corners, inverse edge matrix) of `tet`.

        Raises:
            ValueError: If the tetrahedron is degenerate.
        """
        x = self.tet_points(tet)
        T = (x[1:] - x[0]).T  # columns are edge vectors from the centre
        if self.tet_is_degenerate(tet):
            _LOGGER.error(
                "tet %s is degenerate (volume=%g).", tet, tet_signed_volume(*x)
            )
            raise ValueError(f"Degenerate tetrahedron {tet}: near-zero volume.")
        return x, np.linalg.inv(T)

    def tet_barycentric(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        """Return the barycentric coordinates of `point` in `tet`.

        Args:
            point (NDArray[Any]): Query coordinates, shape (3,).
            tet (TetIndices): The tetrahedron.

        Returns:
            NDArray[Any]: Weights of (centre, base, a, b); they sum to one.
        """
        x, inv = self._tet_inverse(tet)
        lam = inv @ (np.asarray(point, dtype=float) - x[0])
        return np.concatenate(([1.0 - lam.sum()], lam))

    def tet_barycentric_grads(self, tet: TetIndices) -> NDArray[Any]:
        """Return the gradients of the four barycentric coordinates, shape (4, 3)."""
        _, inv = self._tet_inverse(tet)
        return np.vstack((-inv.sum(axis=0), inv))

    def __repr__(self) -> str:
        return (
            f"PolyMesh(n_points={self.n_points}, n_faces={self.n_faces}, "
            f"n_cells={self.n_cells})"
        )
