"""Concrete averaging methods.

Importing this package registers every built-in method:
  - basic: cell-constant values with a cached Gauss gradient.
  - dual: cell and point values blended linearly inside each tetrahedron.
"""

from .basic import Basic
from .dual import Dual

__all__ = ["Basic", "Dual"]
