"""Finite-volume operators on PolyMesh cell fields.

Provides linear face interpolation weights and a Gauss gradient with
zero-gradient boundaries, assembled through a sparse cell/face incidence
matrix.
"""

from __future__ import annotations

import logging
from typing import Any
from numpy.typing import NDArray

import numpy as np
import scipy.sparse as sp

from .mesh import PolyMesh

_LOGGER = logging.getLogger(__name__)


def face_cell_incidence(mesh: PolyMesh) -> sp.csr_matrix:
    """Return the signed cell/face incidence matrix (n_cells×n_faces).

    Entry (owner, f) is +1 and entry (neighbour, f) is -1, so multiplying a
    per-face flux computed with owner-outward area vectors sums the outward
    flux of every cell.
    """
    internal = np.flatnonzero(mesh.neighbour >= 0)
    faces = np.arange(mesh.n_faces)
    rows = np.concatenate((mesh.owner, mesh.neighbour[internal]))
    cols = np.concatenate((faces, internal))
    vals = np.concatenate((np.ones(mesh.n_faces), -np.ones(internal.size)))
    return sp.csr_matrix((vals, (rows, cols)), shape=(mesh.n_cells, mesh.n_faces))


def linear_weights(mesh: PolyMesh) -> NDArray[Any]:
    """Return owner weights for linear interpolation to faces.

    For an internal face the face value is ``w*phi_owner + (1-w)*phi_nbr``
    with w the neighbour-side share of the centre-to-centre distance
    measured along the face normal. Boundary faces get w = 1.
    """
    w = np.ones(mesh.n_faces)
    internal = mesh.neighbour >= 0
    if not np.any(internal):
        return w

    sf = mesh.face_areas[internal]
    cf = mesh.face_centres[internal]
    d_own = np.abs(np.einsum("ij,ij->i", sf, cf - mesh.cell_centres[mesh.owner[internal]]))
    d_nei = np.abs(
        np.einsum("ij,ij->i", sf, mesh.cell_centres[mesh.neighbour[internal]] - cf)
    )
    denom = d_own + d_nei
    w[internal] = np.where(denom > 0.0, d_nei / np.where(denom > 0.0, denom, 1.0), 0.5)
    return w


def interpolate_to_faces(mesh: PolyMesh, values: NDArray[Any]) -> NDArray[Any]:
    """Linearly interpolate a cell field to faces; boundary faces copy the owner."""
    vals = np.asarray(values, dtype=float)
    w = linear_weights(mesh).reshape((-1,) + (1,) * (vals.ndim - 1))
    phi_f = vals[mesh.owner].copy()
    internal = mesh.neighbour >= 0
    phi_f[internal] = (
        w[internal] * vals[mesh.owner[internal]]
        + (1.0 - w[internal]) * vals[mesh.neighbour[internal]]
    )
    return phi_f


def cell_gradient(mesh: PolyMesh, values: NDArray[Any]) -> NDArray[Any]:
    """Compute the Gauss gradient of a cell field.

    grad(phi)_c = (1/V_c) * sum_f S_f ⊗ phi_f, with phi_f from
    `interpolate_to_faces`. The leading axis of each gradient entry is the
    spatial derivative direction.

    Args:
        mesh (PolyMesh): The mesh.
        values (NDArray[Any]): Cell values, shape (n_cells, *value_shape).

    Returns:
        NDArray[Any]: Gradient, shape (n_cells, 3, *value_shape). Cells with
        zero volume get a zero gradient.

    Raises:
        ValueError: If `values` does not have one entry per cell.
    """
    vals = np.asarray(values, dtype=float)
    if vals.shape[0] != mesh.n_cells:
        raise ValueError(f"expected {mesh.n_cells} cell values, got {vals.shape[0]}")

    value_shape = vals.shape[1:]
    phi_f = interpolate_to_faces(mesh, vals)
    sf = mesh.face_areas.reshape((mesh.n_faces, 3) + (1,) * len(value_shape))
    flux = sf * phi_f[:, None, ...]

    summed = face_cell_incidence(mesh) @ flux.reshape(mesh.n_faces, -1)
    summed = np.asarray(summed).reshape((mesh.n_cells, 3) + value_shape)

    vol = mesh.cell_volumes.reshape((-1,) + (1,) * (1 + len(value_shape)))
    grad = np.divide(summed, vol, out=np.zeros_like(summed), where=vol > 0.0)

    _LOGGER.debug("cell_gradient: %d cells, value shape %s", mesh.n_cells, value_shape)
    return grad
