"""
Initial particle layouts for weakly-compressible SPH runs.

Creates a dam-break setup:
- A block of fluid particles on a regular lattice with hydrostatic density
- Fixed boundary layers (floor and side walls) flagged by the motion limiter
"""

import numpy as np
from typing import Sequence, Tuple

from .config import SimulationConstants
from .core.particles import ParticleArrays


def generate_lattice(lower: Sequence[int], upper: Sequence[int], dx: float) -> np.ndarray:
    """Cell-centered lattice points for integer index ranges [lower, upper).

    Returns:
        Array of positions, shape (K, D)
    """
    axes = [(np.arange(lo, hi) + 0.5) * dx for lo, hi in zip(lower, upper)]
    grid = np.meshgrid(*axes, indexing="ij")
    return np.stack([g.ravel() for g in grid], axis=1)


def hydrostatic_density(depth: np.ndarray, constants: SimulationConstants) -> np.ndarray:
    """Density that balances gravity under the Tait equation of state.

    ρ = ρ0 (1 + ρ0 g depth / Cb)^(1/γ)
    """
    c = constants
    return c.rho0 * (1.0 + c.rho0 * c.g * depth / c.background_pressure) ** (1.0 / c.gamma)


def create_dam_break(dx: float = 0.02,
                     fluid_size: Sequence[float] = (0.4, 0.4),
                     tank_size: Sequence[float] = (1.6, 0.8),
                     boundary_layers: int = 3,
                     **constant_overrides) -> Tuple[ParticleArrays, np.ndarray, SimulationConstants]:
    """Create a dam-break scenario in a tank open at the top.

    The last axis is vertical. The fluid block sits in the lower corner of
    the tank at the origin.

    Args:
        dx: Particle spacing
        fluid_size: Fluid block extent per axis
        tank_size: Tank interior extent per axis
        boundary_layers: Number of fixed particle layers in floor and walls
        **constant_overrides: Passed to SimulationConstants.from_resolution

    Returns:
        (particles, motion_limiter, constants)
    """
    dim = len(fluid_size)
    if len(tank_size) != dim:
        raise ValueError("fluid_size and tank_size must have the same dimension")
    if any(f > t for f, t in zip(fluid_size, tank_size)):
        raise ValueError("Fluid block does not fit in the tank")

    constants = SimulationConstants.from_resolution(
        dx, dim=dim, fluid_height=fluid_size[-1], **constant_overrides)

    fluid_cells = [int(round(s / dx)) for s in fluid_size]
    tank_cells = [int(round(s / dx)) for s in tank_size]
    fluid = generate_lattice([0] * dim, fluid_cells, dx)

    lower = [-boundary_layers] * dim
    upper = [t + boundary_layers for t in tank_cells[:-1]] + [tank_cells[-1]]
    shell = generate_lattice(lower, upper, dx)
    walls = np.any(shell < 0.0, axis=1) | np.any(shell[:, :-1] > np.asarray(tank_size[:-1]), axis=1)
    boundary = shell[walls]

    n_fluid = len(fluid)
    particles = ParticleArrays.allocate(n_fluid + len(boundary), dim)
    particles.position[:n_fluid] = fluid
    particles.position[n_fluid:] = boundary
    particles.density[:n_fluid] = hydrostatic_density(fluid_size[-1] - fluid[:, -1], constants)
    particles.density[n_fluid:] = constants.rho0

    motion_limiter = np.zeros(particles.n_particles)
    motion_limiter[:n_fluid] = 1.0
    return particles, motion_limiter, constants
