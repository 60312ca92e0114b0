"""
Tabular particle data in CSV form.

The first line is a header naming the columns; recognized names are:
- position: x, y, z
- velocity: vx, vy, vz (optional, default 0)
- density: density or rho
- motion_limiter (optional, default 1)
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from .core.particles import ParticleArrays
from .errors import ShapeMismatch

logger = logging.getLogger(__name__)

AXES = ("x", "y", "z")
DENSITY_COLUMNS = ("density", "rho")


def _read_table(path: Path) -> Tuple[list, np.ndarray]:
    with open(path, "r", encoding="utf-8") as f:
        header = f.readline()
    columns = [c.strip().lower() for c in header.split(",")]
    data = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2, dtype=np.float64)
    if data.size == 0:
        return columns, np.zeros((0, len(columns)))
    if data.shape[1] != len(columns):
        raise ShapeMismatch(f"{path}: header has {len(columns)} columns, rows have {data.shape[1]}")
    return columns, data


def load_particles_csv(path: Union[str, Path], dim: int = 2) -> Tuple[ParticleArrays, np.ndarray]:
    """Load initial particle state from CSV.

    Args:
        path: CSV file
        dim: Spatial dimension; uses the first dim position/velocity axes

    Returns:
        (particles, motion_limiter)
    """
    path = Path(path)
    columns, data = _read_table(path)
    index = {name: k for k, name in enumerate(columns)}

    missing = [a for a in AXES[:dim] if a not in index]
    if missing:
        raise ValueError(f"{path}: missing position column(s) {missing}")
    density_col = next((c for c in DENSITY_COLUMNS if c in index), None)
    if density_col is None:
        raise ValueError(f"{path}: missing density column (one of {DENSITY_COLUMNS})")

    n = len(data)
    particles = ParticleArrays.allocate(n, dim)
    for d, axis in enumerate(AXES[:dim]):
        particles.position[:, d] = data[:, index[axis]]
        vcol = "v" + axis
        if vcol in index:
            particles.velocity[:, d] = data[:, index[vcol]]
    particles.density[:] = data[:, index[density_col]]

    if "motion_limiter" in index:
        motion_limiter = data[:, index["motion_limiter"]].copy()
    else:
        motion_limiter = np.ones(n)

    logger.info("Loaded %d particles from %s", n, path)
    return particles, motion_limiter


def save_particles_csv(path: Union[str, Path], particles: ParticleArrays,
                       motion_limiter: np.ndarray = None):
    """Write particle state in the format load_particles_csv reads."""
    dim = particles.dim
    columns = list(AXES[:dim]) + ["v" + a for a in AXES[:dim]] + ["density"]
    table = [particles.position, particles.velocity, particles.density[:, np.newaxis]]
    if motion_limiter is not None:
        columns.append("motion_limiter")
        table.append(np.asarray(motion_limiter, dtype=np.float64)[:, np.newaxis])
    np.savetxt(path, np.hstack(table), delimiter=",", header=",".join(columns), comments="")
