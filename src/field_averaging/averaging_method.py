"""Module defining AveragingMethod, the abstract base of averaging strategies.

An averaging method owns a RegionFields store into which raw samples are
deposited, and knows how to reconstruct a value and a gradient at any point
inside a tetrahedron of a cell from that store. From this it derives four
fields by volume-weighted accumulation over the tetrahedral decomposition
of the mesh:

  - ``<name>:cellValue`` and ``<name>:cellGrad``, sampled at cell centres and
    normalized by the cell volume;
  - ``<name>:pointValue`` and ``<name>:pointGrad``, sampled at face vertices
    and normalized by the summed volume of the tetrahedra touching each point.

Concrete strategies register themselves with
`registry.register_averaging_method` and are selected by name via
`AveragingMethod.new`.
"""

from __future__ import annotations

import abc
import copy
import logging
from typing import Any, ClassVar, Iterator, Mapping, Optional, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np

from .config import lookup, settings
from .exceptions import DegenerateSampleError, ShapeMismatchError
from .field_types import SCALAR, FieldKind
from .field_writer import CELL, POINT, FieldWriter, OutputField, VTUFieldWriter
from .mesh import PolyMesh, TetIndices
from .region_fields import RegionFields
from .registry import lookup_averaging_method

_LOGGER = logging.getLogger(__name__)

#: Dictionary entry holding the strategy name.
TYPE_KEY = "type"


class AveragingMethod(abc.ABC):
    """Abstract averaging strategy over per-region buffers on a mesh.

    Args:
        name (str): Name of the averaged quantity; prefixes output fields.
        config (Mapping[str, Any]): Configuration dictionary of this method.
        mesh (PolyMesh): Mesh the data lives on.
        sizes (Sequence[int]): Number of elements of each region buffer.
        kind (FieldKind): Value type of the averaged quantity.

    Attributes:
        name (str): Name of the averaged quantity.
        config (Mapping[str, Any]): Configuration dictionary (not owned).
        mesh (PolyMesh): Mesh (not owned).
        kind (FieldKind): Value type of the averaged quantity.
        fields (RegionFields): The region buffers (owned).
        time_name (str): Time directory used by `write`.
        writer (Optional[FieldWriter]): Writer used by `write`; a
            VTUFieldWriter on `mesh` is created on first use when None.
    """

    TYPE_NAME: ClassVar[str] = ""

    def __init__(
        self,
        name: str,
        config: Mapping[str, Any],
        mesh: PolyMesh,
        sizes: Sequence[int],
        kind: FieldKind = SCALAR,
    ) -> None:
        self.name = name
        self.config = config
        self.mesh = mesh
        self.kind = kind
        self.fields = RegionFields(sizes, kind)
        self.time_name = settings().time_name
        self.writer: Optional[FieldWriter] = None
        _LOGGER.debug(
            "AveragingMethod '%s' (%s, %s) with region sizes %s",
            name,
            type(self).__name__,
            kind.name,
            list(self.fields.sizes),
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    @staticmethod
    def new(
        name: str,
        config: Mapping[str, Any],
        mesh: PolyMesh,
        kind: FieldKind = SCALAR,
    ) -> AveragingMethod:
        """Construct the averaging method named by ``config["type"]``.

        Args:
            name (str): Name of the averaged quantity.
            config (Mapping[str, Any]): Dictionary holding the strategy name
                under ``"type"`` plus any strategy-specific entries.
            mesh (PolyMesh): Mesh the data lives on.
            kind (FieldKind): Value type of the averaged quantity.

        Returns:
            AveragingMethod: A new instance of the selected strategy.

        Raises:
            KeyError: If the dictionary has no ``"type"`` entry.
            UnknownAveragingMethodError: If the named strategy is not
                registered; the message lists the valid names.
        """
        type_name = str(lookup(config, TYPE_KEY))
        cls = lookup_averaging_method(type_name)
        _LOGGER.info("Selecting averaging method %s for '%s'", type_name, name)
        return cls(name, config, mesh, kind)

    def copy(self) -> AveragingMethod:
        """Return a copy with deep-copied buffers sharing mesh and config."""
        new = copy.copy(self)
        new.fields = self.fields.copy()
        new._copy_state(self)
        return new

    def _copy_state(self, other: AveragingMethod) -> None:
        """Deep-copy strategy-specific state from `other` after `copy`."""

    # ------------------------------------------------------------------
    # Region buffer access
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, region: int) -> NDArray[Any]:
        """Return the buffer of `region` for in-place deposition."""
        return self.fields[region]

    def __iter__(self) -> Iterator[NDArray[Any]]:
        return iter(self.fields)

    # ------------------------------------------------------------------
    # Strategy hooks
    # ------------------------------------------------------------------
    def update_grad(self) -> None:
        """Refresh any gradient state derived from the stored values."""

    @abc.abstractmethod
    def interpolate(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        """Return the reconstructed value at `point` inside `tet`."""

    @abc.abstractmethod
    def interpolate_grad(self, point: NDArray[Any], tet: TetIndices) -> NDArray[Any]:
        """Return the reconstructed gradient at `point` inside `tet`."""

    @abc.abstractmethod
    def primitive_field(self) -> NDArray[Any]:
        """Return the per-cell stored values."""

    # ------------------------------------------------------------------
    # Averaging
    # ------------------------------------------------------------------
    def average(self, weight: Optional[AveragingMethod] = None) -> None:
        """Finalize the deposited data, optionally dividing by a weight.

        Without a weight only `update_grad` runs. With a weight every
        element of every buffer is divided by the matching weight element,
        floored at the configured ``eps``.

        Args:
            weight (Optional[AveragingMethod]): Scalar averaging method with
                the same region layout as this one.

        Raises:
            ShapeMismatchError: If `weight` is not scalar or its region
                count or sizes differ from this method's.
        """
        self.update_grad()

        if weight is None:
            return

        if weight.kind != SCALAR or not self.fields.same_layout(weight.fields):
            _LOGGER.error(
                "average: weight '%s' (%s, sizes %s) does not match '%s' (sizes %s)",
                weight.name,
                weight.kind.name,
                list(weight.fields.sizes),
                self.name,
                list(self.fields.sizes),
            )
            raise ShapeMismatchError(
                f"weight '{weight.name}' ({weight.kind.name}, sizes "
                f"{list(weight.fields.sizes)}) does not match '{self.name}' "
                f"(sizes {list(self.fields.sizes)})"
            )

        self.fields.divide_by(weight.fields, floor=settings().eps)

    # ------------------------------------------------------------------
    # Accumulation and output
    # ------------------------------------------------------------------
    def accumulate(
        self,
    ) -> Tuple[NDArray[Any], NDArray[Any], NDArray[Any], NDArray[Any]]:
        """Build the cell and point fields by tet-volume weighted sums.

        Every tetrahedron of every cell contributes to its own cell, sampled
        at the cell centre, and to exactly the three face vertices that span
        it, sampled at each vertex. Cell sums are divided by the mesh cell
        volume and point sums by the total volume of the tetrahedra that
        touched the point. Tetrahedra the mesh reports as degenerate are
        skipped without being sampled. Entries with a zero normalizer are
        left at zero and reported according to the configured degenerate policy.

        Returns:
            Tuple of (cell_value, cell_grad, point_value, point_grad).

        Raises:
            DegenerateSampleError: If a normalizer is zero and the policy is
                'raise'.
        """
        mesh = self.mesh
        points = mesh.points
        centres = mesh.cell_centres

        point_volume = np.zeros(mesh.n_points)
        cell_value = self.kind.zeros(mesh.n_cells)
        cell_grad = self.kind.grad_zeros(mesh.n_cells)
        point_value = self.kind.zeros(mesh.n_points)
        point_grad = self.kind.grad_zeros(mesh.n_points)

        n_tets = 0
        for celli in range(mesh.n_cells):
            for tet in mesh.cell_tets(celli):
                if mesh.tet_is_degenerate(tet):
                    continue
                v = mesh.tet_volume(tet)
                n_tets += 1

                cell_value[celli] += v * self.interpolate(centres[celli], tet)
                cell_grad[celli] += v * self.interpolate_grad(centres[celli], tet)

                for pointi in mesh.tet_point_labels(tet):
                    point_volume[pointi] += v
                    point_value[pointi] += v * self.interpolate(points[pointi], tet)
                    point_grad[pointi] += v * self.interpolate_grad(points[pointi], tet)

        _LOGGER.debug(
            "accumulate '%s': %d tetrahedra over %d cells",
            self.name,
            n_tets,
            mesh.n_cells,
        )

        self._normalize(cell_value, cell_grad, mesh.cell_volumes, CELL)
        self._normalize(point_value, point_grad, point_volume, POINT)
        return cell_value, cell_grad, point_value, point_grad

    def _normalize(
        self,
        value: NDArray[Any],
        grad: NDArray[Any],
        volume: NDArray[Any],
        association: str,
    ) -> None:
        """Divide value and gradient sums by `volume` where it is positive."""
        ok = volume > 0.0
        n_bad = int(np.count_nonzero(~ok))
        if n_bad:
            policy = settings().degenerate
            msg = (
                f"'{self.name}': {n_bad} {association}(s) with zero accumulated "
                f"volume; values left at zero."
            )
            if policy == "raise":
                _LOGGER.error("%s", msg)
                raise DegenerateSampleError(msg)
            if policy == "warn":
                _LOGGER.warning("%s", msg)

        value[ok] /= volume[ok].reshape((-1,) + (1,) * len(self.kind.shape))
        grad[ok] /= volume[ok].reshape((-1,) + (1,) * len(self.kind.grad_shape))
        value[~ok] = 0.0
        grad[~ok] = 0.0

    def write(self, writer: Optional[FieldWriter] = None) -> bool:
        """Accumulate and write the four derived fields.

        Fields are written in the order cell value, cell gradient, point
        value, point gradient; the first failed write stops the rest.

        Args:
            writer (Optional[FieldWriter]): Writer to use instead of
                `self.writer`.

        Returns:
            bool: True if all four writes succeeded, False otherwise.
        """
        if writer is None:
            if self.writer is None:
                self.writer = VTUFieldWriter(self.mesh)
            writer = self.writer

        cell_value, cell_grad, point_value, point_grad = self.accumulate()

        outputs = (
            OutputField(f"{self.name}:cellValue", self.time_name, CELL, cell_value),
            OutputField(f"{self.name}:cellGrad", self.time_name, CELL, cell_grad),
            OutputField(f"{self.name}:pointValue", self.time_name, POINT, point_value),
            OutputField(f"{self.name}:pointGrad", self.time_name, POINT, point_grad),
        )
        for field in outputs:
            if not writer.write(field):
                _LOGGER.warning(
                    "write '%s': writing %s failed; skipping remaining fields.",
                    self.name,
                    field.name,
                )
                return False
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, kind={self.kind.name}, "
            f"sizes={list(self.fields.sizes)})"
        )
