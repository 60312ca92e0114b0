"""
Numba-optimized force terms: artificial viscosity and momentum equation.

Serial loops over the interaction list with explicit i/j accumulation.
"""

import numpy as np
import numba as nb
from typing import Optional, Tuple

from ..core.neighbors import NeighborList, validate_interactions
from .aggregate import prepare_outputs, check_particle_arrays, check_interaction_array
from .forces_vectorized import tait_equation_of_state


@nb.njit(cache=True)
def compute_artificial_viscosity_numba(pair_i: np.ndarray, pair_j: np.ndarray,
                                       position: np.ndarray, h: float, density: np.ndarray,
                                       alpha: float, velocity: np.ndarray, c0: float,
                                       m0: float, grad_list: np.ndarray,
                                       visc: np.ndarray, visc_list: np.ndarray):
    visc[:, :] = 0.0
    dim = position.shape[1]
    eta2 = (0.1 * h) * (0.1 * h)
    for k in range(pair_i.shape[0]):
        i = pair_i[k]
        j = pair_j[k]

        cond = 0.0
        r2 = 0.0
        for d in range(dim):
            dx = position[i, d] - position[j, d]
            cond += (velocity[i, d] - velocity[j, d]) * dx
            r2 += dx * dx

        pi_ij = 0.0
        if cond < 0.0:
            mu = h * cond / (r2 + eta2)
            pi_ij = -alpha * c0 * mu / (0.5 * (density[i] + density[j]))

        for d in range(dim):
            a = -pi_ij * m0 * grad_list[k, d]
            visc[i, d] += a
            visc[j, d] -= a
            visc_list[k, d] = a


@nb.njit(cache=True)
def compute_momentum_numba(pair_i: np.ndarray, pair_j: np.ndarray, m: float,
                           density: np.ndarray, pressure: np.ndarray, grad_list: np.ndarray,
                           dvdt: np.ndarray, dvdt_list: np.ndarray):
    dvdt[:, :] = 0.0
    dim = grad_list.shape[1]
    for k in range(pair_i.shape[0]):
        i = pair_i[k]
        j = pair_j[k]
        p_fac = (pressure[i] + pressure[j]) / (density[i] * density[j])
        for d in range(dim):
            a = -m * p_fac * grad_list[k, d]
            dvdt[i, d] += a
            dvdt[j, d] -= a
            dvdt_list[k, d] = a


def compute_artificial_viscosity_numba_wrapper(
        nlist: NeighborList, position: np.ndarray, h: float, density: np.ndarray,
        alpha: float, velocity: np.ndarray, c0: float, m0: float,
        kernel_gradient_list: np.ndarray,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba viscosity that matches the standard interface."""
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density, velocity=velocity)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    visc, visc_list = prepare_outputs(out, n, len(nlist), dim)
    compute_artificial_viscosity_numba(
        nlist.i, nlist.j, np.ascontiguousarray(position, dtype=np.float64), h,
        np.ascontiguousarray(density, dtype=np.float64), alpha,
        np.ascontiguousarray(velocity, dtype=np.float64), c0, m0,
        np.ascontiguousarray(kernel_gradient_list, dtype=np.float64), visc, visc_list)
    return visc, visc_list


def compute_momentum_numba_wrapper(
        nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
        kernel_gradient_list: np.ndarray, c0: float, gamma: float, rho0: float,
        out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba momentum equation that matches the standard interface."""
    n, dim = position.shape
    validate_interactions(nlist, n)
    check_particle_arrays(n, density=density)
    check_interaction_array("kernel gradient list", kernel_gradient_list, nlist)
    dvdt, dvdt_list = prepare_outputs(out, n, len(nlist), dim)

    density = np.ascontiguousarray(density, dtype=np.float64)
    pressure = np.atleast_1d(tait_equation_of_state(density, c0, gamma, rho0))
    compute_momentum_numba(nlist.i, nlist.j, m, density, pressure,
                           np.ascontiguousarray(kernel_gradient_list, dtype=np.float64),
                           dvdt, dvdt_list)
    return dvdt, dvdt_list
