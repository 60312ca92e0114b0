"""
Vectorized continuity equation for weakly-compressible SPH.

Implements both:
- Plain continuity: dρᵢ/dt = ρᵢ Σⱼ (m/ρⱼ) vᵢⱼ·∇ᵢWᵢⱼ
- Continuity with delta-SPH density diffusion (DDT) and hydrostatic correction
"""

import numpy as np
from typing import Optional, Tuple

from ..core.neighbors import NeighborList, validate_interactions
from ..errors import DomainViolation
from .aggregate import (accumulate_pairwise, prepare_outputs,
                        check_particle_arrays, check_interaction_array)


def check_hydrostatic_offset(drz: np.ndarray, ddt_gz: float):
    """Raise if 1 ± DDTgz·drz is not positive for some pair.

    The hydrostatic correction takes a fractional power of that base, so a
    vertical separation beyond 1/DDTgz = c0² / (γ g) has no real value.

    Raises:
        DomainViolation: some |drz| >= 1/DDTgz
    """
    if len(drz) == 0:
        return
    worst = float(np.max(np.abs(drz)))
    if not np.isfinite(worst) or ddt_gz * worst >= 1.0:
        limit = 1.0 / ddt_gz if ddt_gz > 0 else np.inf
        raise DomainViolation(
            f"Vertical separation {worst:.6g} exceeds the hydrostatic range "
            f"{limit:.6g} of the density diffusion term")


def compute_density_rate_vectorized(
        nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
        velocity: np.ndarray, kernel_gradient_list: np.ndarray,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Density rate without diffusion.

    Particle i: ρᵢ ((m/ρⱼ) vᵢⱼ)·∇ᵢWᵢⱼ
    Particle j: ρⱼ ((m/ρᵢ)(-vᵢⱼ))·(-∇ᵢWᵢⱼ)

    The per-interaction output holds the particle-i value only.

    Returns:
        (per_particle, per_interaction) density rates
    """
    n = len(position)
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    drhodt, drhodt_list = prepare_outputs(out, n, len(nlist))

    i, j = nlist.i, nlist.j
    rho_i = density[i]
    rho_j = density[j]
    vij = velocity[i] - velocity[j]
    v_dot_grad = np.einsum('md,md->m', vij, kernel_gradient_list)

    contribution_i = rho_i * (m / rho_j) * v_dot_grad
    contribution_j = rho_j * (m / rho_i) * v_dot_grad

    drhodt_list[:] = contribution_i
    accumulate_pairwise(drhodt, nlist, contribution_i, contribution_j)
    return drhodt, drhodt_list


def compute_density_rate_ddt_vectorized(
        nlist: NeighborList, position: np.ndarray, h: float, m0: float, delta: float,
        c0: float, gamma: float, g: float, rho0: float, density: np.ndarray,
        velocity: np.ndarray, kernel_gradient_list: np.ndarray, motion_limiter: np.ndarray,
        vertical_axis: Optional[int] = None,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Density rate with delta-SPH density diffusion.

    The diffusive flux is measured against the hydrostatic density
    difference along the vertical axis, so a still water column does not
    diffuse. Each side of a pair has its own closed form because the
    hydrostatic offset depends on which particle is higher.

    Args:
        nlist: Interaction records
        position: Positions, shape (N, D)
        h: Smoothing length
        m0: Particle mass
        delta: Diffusion coefficient δᵩ
        c0: Reference sound speed
        gamma: Tait exponent
        g: Gravitational acceleration magnitude
        rho0: Reference density
        density: Densities, shape (N,)
        velocity: Velocities, shape (N, D)
        kernel_gradient_list: ∇ᵢWᵢⱼ per interaction, shape (M, D)
        motion_limiter: Per-particle factor on the diffusive term (0 disables)
        vertical_axis: Axis of xᵢⱼ used for the hydrostatic correction
            (defaults to the last axis)
        out: Optional (per_particle, per_interaction) buffers to overwrite

    Returns:
        (per_particle, per_interaction) density rates, the latter i-centric

    Raises:
        DomainViolation: a pair is vertically further apart than c0² / (γ g)
    """
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity, motion_limiter=motion_limiter)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    drhodt, drhodt_list = prepare_outputs(out, n, len(nlist))
    if vertical_axis is None:
        vertical_axis = dim - 1

    eta2 = (0.1 * h) * (0.1 * h)
    cb = (c0 ** 2 * rho0) / gamma
    ddt_gz = rho0 * g / cb
    ddt_kh = 2.0 * h * delta

    i, j = nlist.i, nlist.j
    xij = position[i] - position[j]
    rho_i = density[i]
    rho_j = density[j]
    vij = velocity[i] - velocity[j]

    r2 = np.einsum('md,md->m', xij, xij)
    dot3 = -np.einsum('md,md->m', xij, kernel_gradient_list)
    drz = xij[:, vertical_axis]
    check_hydrostatic_offset(drz, ddt_gz)

    # Particle i
    drhop_i = rho0 * (1.0 + ddt_gz * drz) ** (1.0 / gamma) - rho0
    visc_dens_i = ddt_kh * c0 * (rho_j - rho_i - drhop_i) / (r2 + eta2)
    delta_i = visc_dens_i * dot3 * m0 / rho_j

    # Particle j
    drhop_j = rho0 * (1.0 + ddt_gz * -drz) ** (1.0 / gamma) - rho0
    visc_dens_j = ddt_kh * c0 * (rho_i - rho_j - drhop_j) / (r2 + eta2)
    delta_j = visc_dens_j * dot3 * m0 / rho_i

    m0_dot = m0 * np.einsum('md,md->m', vij, kernel_gradient_list)
    contribution_i = m0_dot + delta_i * motion_limiter[i]
    contribution_j = m0_dot + delta_j * motion_limiter[j]

    drhodt_list[:] = contribution_i
    accumulate_pairwise(drhodt, nlist, contribution_i, contribution_j)
    return drhodt, drhodt_list
