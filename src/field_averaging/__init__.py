"""The field_averaging package turns mesh-sampled data into cell and point fields.

This package offers:
  - A polyhedral mesh adapter with tetrahedral cell decomposition.
  - Runtime-selectable averaging methods over per-region buffers.
  - Volume-weighted accumulation of cell/point values and gradients.
  - VTU output of the derived fields.

Submodules:
  - averaging_method: AveragingMethod abstract base and accumulation pass.
  - config: Logging level, environment helpers and numerical settings.
  - exceptions: Error types.
  - field_types: Value/gradient shape pairs (SCALAR, VECTOR, TENSOR).
  - field_writer: OutputField, FieldWriter protocol, VTUFieldWriter.
  - mesh: PolyMesh and TetIndices.
  - methods: Built-in averaging methods (basic, dual).
  - operators: Finite-volume Gauss gradient.
  - region_fields: RegionFields buffer store.
  - registry: Name-keyed averaging method registry.

Classes:
  AveragingMethod, Basic, Dual, PolyMesh, RegionFields, VTUFieldWriter
"""

from .config import (
    AveragingSettings,
    configure,
    lookup,
    set_log_level,
    settings,
    use,
)
from .exceptions import (
    AveragingError,
    DegenerateSampleError,
    ShapeMismatchError,
    UnknownAveragingMethodError,
)
from .field_types import SCALAR, TENSOR, VECTOR, FieldKind

from field_averaging.averaging_method import AveragingMethod
from field_averaging.field_writer import FieldWriter, OutputField, VTUFieldWriter
from field_averaging.mesh import PolyMesh, TetIndices
from field_averaging.methods import Basic, Dual
from field_averaging.operators import cell_gradient
from field_averaging.region_fields import RegionFields
from field_averaging.registry import (
    averaging_method_names,
    register_averaging_method,
    unregister_averaging_method,
)

__all__ = [
    # Core classes
    "AveragingMethod",
    "Basic",
    "Dual",
    "PolyMesh",
    "TetIndices",
    "RegionFields",
    "FieldKind",
    "SCALAR",
    "VECTOR",
    "TENSOR",
    # Output
    "FieldWriter",
    "OutputField",
    "VTUFieldWriter",
    # Registry
    "register_averaging_method",
    "unregister_averaging_method",
    "averaging_method_names",
    # Operators
    "cell_gradient",
    # Errors
    "AveragingError",
    "UnknownAveragingMethodError",
    "ShapeMismatchError",
    "DegenerateSampleError",
    # Configuration
    "AveragingSettings",
    "settings",
    "configure",
    "use",
    "lookup",
    "set_log_level",
]
