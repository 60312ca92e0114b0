"""
Vectorized force terms for weakly-compressible SPH.

Includes:
- Tait equation of state
- Monaghan artificial viscosity
- Momentum equation (pressure gradient only)

Each term works on a whole interaction list at once and returns
(per_particle, per_interaction) accelerations.
"""

import numpy as np
from typing import Optional, Tuple

from ..core.neighbors import NeighborList, validate_interactions
from ..errors import DomainViolation
from .aggregate import (accumulate_pairwise, prepare_outputs,
                        check_particle_arrays, check_interaction_array)


def tait_equation_of_state(density, c0: float, gamma: float, rho0: float):
    """Tait equation of state for weakly compressible fluids.

    P = (c0² ρ0 / γ) [(ρ/ρ0)^γ - 1]

    Args:
        density: Density, scalar or array
        c0: Reference sound speed
        gamma: Polytropic exponent (typically 7 for water)
        rho0: Reference density

    Returns:
        Pressure with the shape of density

    Raises:
        DomainViolation: any density is non-positive or not finite
    """
    rho = np.asarray(density, dtype=np.float64)
    bad = ~(rho > 0.0) | ~np.isfinite(rho)
    if np.any(bad):
        first = np.flatnonzero(np.atleast_1d(bad))[0]
        raise DomainViolation(
            f"Density must be positive and finite, got {np.atleast_1d(rho)[first]} "
            f"at particle {first}")
    p = ((c0 ** 2 * rho0) / gamma) * ((rho / rho0) ** gamma - 1.0)
    return p if p.ndim else float(p)


def compute_artificial_viscosity_vectorized(
        nlist: NeighborList, position: np.ndarray, h: float, density: np.ndarray,
        alpha: float, velocity: np.ndarray, c0: float, m0: float,
        kernel_gradient_list: np.ndarray,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Monaghan artificial viscosity acceleration.

    Πᵢⱼ = -α c0 μᵢⱼ / ρ̄ᵢⱼ   if vᵢⱼ·xᵢⱼ < 0 else 0
    μᵢⱼ = h vᵢⱼ·xᵢⱼ / (|xᵢⱼ|² + η²),  η² = (0.1h)²

    Particle i receives -Πᵢⱼ m0 ∇ᵢWᵢⱼ, particle j the negation.

    Returns:
        (per_particle, per_interaction) accelerations, the latter i-centric
    """
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    visc, visc_list = prepare_outputs(out, n, len(nlist), dim)

    eta2 = (0.1 * h) * (0.1 * h)
    i, j = nlist.i, nlist.j

    vij = velocity[i] - velocity[j]
    xij = position[i] - position[j]
    rho_ij = 0.5 * (density[i] + density[j])

    cond = np.einsum('md,md->m', vij, xij)
    mu = h * cond / (np.einsum('md,md->m', xij, xij) + eta2)
    pi_ij = np.where(cond < 0.0, -alpha * c0 * mu / rho_ij, 0.0)

    visc_list[:] = -(pi_ij * m0)[:, np.newaxis] * kernel_gradient_list
    accumulate_pairwise(visc, nlist, visc_list, -visc_list)
    return visc, visc_list


def compute_momentum_vectorized(
        nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
        kernel_gradient_list: np.ndarray, c0: float, gamma: float, rho0: float,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Pressure-gradient acceleration (no dissipation).

    dvᵢ/dt += -m (Pᵢ + Pⱼ)/(ρᵢ ρⱼ) ∇ᵢWᵢⱼ, particle j receives the negation.
    Artificial viscosity is added separately by the caller.

    Returns:
        (per_particle, per_interaction) accelerations
    """
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    dvdt, dvdt_list = prepare_outputs(out, n, len(nlist), dim)

    pressure = tait_equation_of_state(density, c0, gamma, rho0)
    i, j = nlist.i, nlist.j
    rho_i = density[i]
    rho_j = density[j]
    p_fac = (pressure[i] + pressure[j]) / (rho_i * rho_j)

    dvdt_list[:] = -(m * p_fac)[:, np.newaxis] * kernel_gradient_list
    accumulate_pairwise(dvdt, nlist, dvdt_list, -dvdt_list)
    return dvdt, dvdt_list
