from __future__ import annotations

import numpy as np
import pytest

from field_averaging.mesh import PolyMesh


@pytest.fixture
def single_tet_mesh() -> PolyMesh:
    """
    One tetrahedral cell:
        v0 = [0, 0, 0]
        v1 = [1, 0, 0]
        v2 = [0, 1, 0]
        v3 = [0, 0, 1]
    Volume 1/6, centroid (1/4, 1/4, 1/4); decomposes into 4 tetrahedra.
    """
    points = np.array(
        [
            [0.0, 0.0, 0.0],  # v0
            [1.0, 0.0, 0.0],  # v1
            [0.0, 1.0, 0.0],  # v2
            [0.0, 0.0, 1.0],  # v3
        ]
    )
    return PolyMesh(points, [("tetra", np.array([[0, 1, 2, 3]]))])


@pytest.fixture
def unit_cube_mesh() -> PolyMesh:
    """One hexahedral cell, the unit cube; 6 quad faces -> 12 tetrahedra."""
    points = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
            [1.0, 0.0, 1.0],
            [1.0, 1.0, 1.0],
            [0.0, 1.0, 1.0],
        ]
    )
    return PolyMesh(points, [("hexahedron", np.array([[0, 1, 2, 3, 4, 5, 6, 7]]))])


@pytest.fixture
def two_hex_mesh() -> PolyMesh:
    """
    Two unit cubes stacked along x, sharing the face x = 1:
      cell 0: [0,1]x[0,1]x[0,1]
      cell 1: [1,2]x[0,1]x[0,1]
    """
    points = np.array(
        [
            [0.0, 0.0, 0.0],  # 0
            [1.0, 0.0, 0.0],  # 1
            [1.0, 1.0, 0.0],  # 2
            [0.0, 1.0, 0.0],  # 3
            [0.0, 0.0, 1.0],  # 4
            [1.0, 0.0, 1.0],  # 5
            [1.0, 1.0, 1.0],  # 6
            [0.0, 1.0, 1.0],  # 7
            [2.0, 0.0, 0.0],  # 8
            [2.0, 1.0, 0.0],  # 9
            [2.0, 0.0, 1.0],  # 10
            [2.0, 1.0, 1.0],  # 11
        ]
    )
    hexes = np.array([[0, 1, 2, 3, 4, 5, 6, 7], [1, 8, 9, 2, 5, 10, 11, 6]])
    return PolyMesh(points, [("hexahedron", hexes)])


@pytest.fixture
def mixed_mesh() -> PolyMesh:
    """
    A unit cube with a pyramid on top (apex at z = 1.5) and a tetrahedron
    glued to the pyramid face (4, 5, 8):
      volumes 1, 1/6 and 1/8.
    """
    points = np.array(
        [
            [0.0, 0.0, 0.0],  # 0
            [1.0, 0.0, 0.0],  # 1
            [1.0, 1.0, 0.0],  # 2
            [0.0, 1.0, 0.0],  # 3
            [0.0, 0.0, 1.0],  # 4
            [1.0, 0.0, 1.0],  # 5
            [1.0, 1.0, 1.0],  # 6
            [0.0, 1.0, 1.0],  # 7
            [0.5, 0.5, 1.5],  # 8 pyramid apex
            [0.5, -1.0, 1.5],  # 9 tet apex
        ]
    )
    cells = [
        ("hexahedron", np.array([[0, 1, 2, 3, 4, 5, 6, 7]])),
        ("pyramid", np.array([[4, 5, 6, 7, 8]])),
        ("tetra", np.array([[4, 5, 8, 9]])),
    ]
    return PolyMesh(points, cells)
