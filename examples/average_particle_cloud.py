"""Average a synthetic particle cloud onto a tetrahedral mesh.

Usage:
    python average_particle_cloud.py mesh.vtu [output_dir]

Particles are scattered uniformly through the mesh's bounding box; each one
deposits its volume fraction into the nearest cell (found with a KD-tree on
cell centres). The volume fraction is then written as cell/point values and
gradients next to the particle count used as weight.
"""
import logging
import sys

import numpy as np
from scipy.spatial import cKDTree

import field_averaging as fa

logging.basicConfig(level=logging.INFO)
fa.set_log_level("INFO")


def main(meshfile: str, output_dir: str = "postProcessing") -> None:
    mesh = fa.PolyMesh.read(meshfile)
    rng = np.random.default_rng(0)

    lo, hi = mesh.points.min(axis=0), mesh.points.max(axis=0)
    positions = lo + (hi - lo) * rng.random((20 * mesh.n_cells, 3))
    volumes = 1e-3 * rng.random(positions.shape[0])

    _, cells = cKDTree(mesh.cell_centres).query(positions)

    alpha = fa.AveragingMethod.new("alpha", {"type": "basic"}, mesh)
    count = fa.AveragingMethod.new("count", {"type": "basic"}, mesh)

    np.add.at(alpha[0], cells, volumes / mesh.cell_volumes[cells])
    np.add.at(count[0], cells, 1.0)

    # Mean particle volume fraction per cell
    alpha.average(count)

    with fa.use(output_dir=output_dir):
        alpha.time_name = "0"
        if not alpha.write():
            sys.exit("writing alpha failed")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        sys.exit(__doc__)
    main(*sys.argv[1:3])
