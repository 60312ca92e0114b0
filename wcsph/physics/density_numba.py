"""
Numba-optimized continuity equation, plain and with density diffusion.
"""

import numpy as np
import numba as nb
from typing import Optional, Tuple

from ..core.neighbors import NeighborList, validate_interactions
from .aggregate import prepare_outputs, check_particle_arrays, check_interaction_array
from .density_vectorized import check_hydrostatic_offset


@nb.njit(cache=True)
def compute_density_rate_numba(pair_i: np.ndarray, pair_j: np.ndarray, m: float,
                               density: np.ndarray, velocity: np.ndarray,
                               grad_list: np.ndarray, drhodt: np.ndarray,
                               drhodt_list: np.ndarray):
    drhodt[:] = 0.0
    dim = velocity.shape[1]
    for k in range(pair_i.shape[0]):
        i = pair_i[k]
        j = pair_j[k]
        v_dot_grad = 0.0
        for d in range(dim):
            v_dot_grad += (velocity[i, d] - velocity[j, d]) * grad_list[k, d]

        rate_i = density[i] * (m / density[j]) * v_dot_grad
        drhodt[i] += rate_i
        drhodt[j] += density[j] * (m / density[i]) * v_dot_grad
        drhodt_list[k] = rate_i


@nb.njit(cache=True)
def compute_density_rate_ddt_numba(pair_i: np.ndarray, pair_j: np.ndarray,
                                   position: np.ndarray, h: float, m0: float, delta: float,
                                   c0: float, gamma: float, g: float, rho0: float,
                                   density: np.ndarray, velocity: np.ndarray,
                                   grad_list: np.ndarray, motion_limiter: np.ndarray,
                                   vertical_axis: int, drhodt: np.ndarray,
                                   drhodt_list: np.ndarray):
    drhodt[:] = 0.0
    dim = position.shape[1]
    eta2 = (0.1 * h) * (0.1 * h)
    cb = (c0 * c0 * rho0) / gamma
    ddt_gz = rho0 * g / cb
    ddt_kh = 2.0 * h * delta
    inv_gamma = 1.0 / gamma

    for k in range(pair_i.shape[0]):
        i = pair_i[k]
        j = pair_j[k]
        rho_i = density[i]
        rho_j = density[j]

        r2 = 0.0
        dot3 = 0.0
        v_dot_grad = 0.0
        for d in range(dim):
            dx = position[i, d] - position[j, d]
            r2 += dx * dx
            dot3 -= dx * grad_list[k, d]
            v_dot_grad += (velocity[i, d] - velocity[j, d]) * grad_list[k, d]
        drz = position[i, vertical_axis] - position[j, vertical_axis]

        drhop = rho0 * (1.0 + ddt_gz * drz) ** inv_gamma - rho0
        delta_i = ddt_kh * c0 * (rho_j - rho_i - drhop) / (r2 + eta2) * dot3 * m0 / rho_j

        drhop = rho0 * (1.0 - ddt_gz * drz) ** inv_gamma - rho0
        delta_j = ddt_kh * c0 * (rho_i - rho_j - drhop) / (r2 + eta2) * dot3 * m0 / rho_i

        m0_dot = m0 * v_dot_grad
        rate_i = m0_dot + delta_i * motion_limiter[i]
        drhodt[i] += rate_i
        drhodt[j] += m0_dot + delta_j * motion_limiter[j]
        drhodt_list[k] = rate_i


def compute_density_rate_numba_wrapper(
        nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
        velocity: np.ndarray, kernel_gradient_list: np.ndarray,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba continuity that matches the standard interface."""
    n = len(position)
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    drhodt, drhodt_list = prepare_outputs(out, n, len(nlist))
    compute_density_rate_numba(
        nlist.i, nlist.j, m, np.ascontiguousarray(density, dtype=np.float64),
        np.ascontiguousarray(velocity, dtype=np.float64),
        np.ascontiguousarray(kernel_gradient_list, dtype=np.float64), drhodt, drhodt_list)
    return drhodt, drhodt_list


def compute_density_rate_ddt_numba_wrapper(
        nlist: NeighborList, position: np.ndarray, h: float, m0: float, delta: float,
        c0: float, gamma: float, g: float, rho0: float, density: np.ndarray,
        velocity: np.ndarray, kernel_gradient_list: np.ndarray, motion_limiter: np.ndarray,
        vertical_axis: Optional[int] = None,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba diffusive continuity that matches the standard interface."""
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity, motion_limiter=motion_limiter)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    drhodt, drhodt_list = prepare_outputs(out, n, len(nlist))
    if vertical_axis is None:
        vertical_axis = dim - 1
    drz = position[nlist.i, vertical_axis] - position[nlist.j, vertical_axis]
    check_hydrostatic_offset(drz, rho0 * g / ((c0 ** 2 * rho0) / gamma))
    compute_density_rate_ddt_numba(
        nlist.i, nlist.j, np.ascontiguousarray(position, dtype=np.float64),
        h, m0, delta, c0, gamma, g, rho0,
        np.ascontiguousarray(density, dtype=np.float64),
        np.ascontiguousarray(velocity, dtype=np.float64),
        np.ascontiguousarray(kernel_gradient_list, dtype=np.float64),
        np.ascontiguousarray(motion_limiter, dtype=np.float64),
        vertical_axis, drhodt, drhodt_list)
    return drhodt, drhodt_list
