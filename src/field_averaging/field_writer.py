"""Output field descriptors and writers.

This module provides OutputField, the ephemeral descriptor of one derived
field, the FieldWriter protocol consumed by `AveragingMethod.write`, and
VTUFieldWriter, which writes each field as its own VTU file via meshio.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
from numpy.typing import NDArray

import meshio
import numpy as np

from .config import settings
from .mesh import PolyMesh

_LOGGER = logging.getLogger(__name__)

CELL = "cell"
POINT = "point"


@dataclass(frozen=True)
class OutputField:
    """A derived field ready to be persisted.

    Attributes:
        name (str): Field name, e.g. ``"alpha:cellValue"``.
        time_name (str): Time directory the field belongs to.
        association (str): ``"cell"`` or ``"point"``.
        values (NDArray[Any]): One entry per cell or per point.
    """

    name: str
    time_name: str
    association: str
    values: NDArray[Any]

    def __post_init__(self) -> None:
        if self.association not in (CELL, POINT):
            raise ValueError(
                f"association must be {CELL!r} or {POINT!r}, got {self.association!r}"
            )


class FieldWriter(Protocol):
    """Anything that can persist an OutputField and report success."""

    def write(self, field: OutputField) -> bool: ...


class VTUFieldWriter:
    """Write each field to ``<root>/<time_name>/<name>.vtu``.

    Cell fields are stored as cell data of the mesh's own cell blocks, point
    fields as point data. Multi-component values are flattened per element
    (a 3×3 tensor becomes 9 components).

    Args:
        mesh (PolyMesh): The mesh the fields live on.
        root (Optional[str]): Output root; defaults to the configured
            `output_dir`.
    """

    def __init__(self, mesh: PolyMesh, root: Optional[str] = None) -> None:
        self.mesh = mesh
        self.root = root if root is not None else settings().output_dir

    def path_for(self, field: OutputField) -> str:
        """Return the file path `field` is written to."""
        return os.path.join(self.root, field.time_name, f"{field.name}.vtu")

    def _flat(self, values: NDArray[Any]) -> NDArray[Any]:
        arr = np.asarray(values, dtype=float)
        return arr if arr.ndim == 1 else arr.reshape(arr.shape[0], -1)

    def write(self, field: OutputField) -> bool:
        """Write `field` to disk.

        Returns:
            bool: True on success, False if the data or the file system
            rejected the write or meshio failed (the error is logged).
        """
        filename = self.path_for(field)
        try:
            m = self.mesh.to_meshio()
            data = self._flat(field.values)
            if field.association == POINT:
                if data.shape[0] != self.mesh.n_points:
                    raise ValueError(
                        f"point field '{field.name}' length {data.shape[0]} "
                        f"!= n_points {self.mesh.n_points}"
                    )
                m.point_data[field.name] = data
            else:
                if data.shape[0] != self.mesh.n_cells:
                    raise ValueError(
                        f"cell field '{field.name}' length {data.shape[0]} "
                        f"!= n_cells {self.mesh.n_cells}"
                    )
                # meshio expects one array per cell block
                split: List[NDArray[Any]] = []
                start = 0
                for _, conn in self.mesh.cell_blocks:
                    split.append(data[start : start + conn.shape[0]])
                    start += conn.shape[0]
                cell_data: Dict[str, List[NDArray[Any]]] = {field.name: split}
                m.cell_data = cell_data

            os.makedirs(os.path.dirname(filename), exist_ok=True)
            m.write(filename)
        except (OSError, ValueError, meshio.WriteError):
            _LOGGER.exception("Writing field '%s' to '%s' failed.", field.name, filename)
            return False

        _LOGGER.info(
            "Field '%s' (%s, %d values) written to '%s'",
            field.name,
            field.association,
            len(field.values),
            filename,
        )
        return True
