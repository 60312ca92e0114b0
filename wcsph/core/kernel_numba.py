"""
Numba-compiled kernel sums over the interaction list.

Loops are serial: every record writes to two particle slots, so a parallel
loop over pairs would race on the accumulation arrays.
"""

import numpy as np
import numba as nb
from typing import Optional, Tuple

from .neighbors import NeighborList, validate_interactions
from ..physics.aggregate import prepare_outputs


@nb.njit(cache=True)
def wendland_value(alpha_d: float, q: float) -> float:
    """Wendland quintic kernel value."""
    t = 1.0 - 0.5 * q
    return alpha_d * t * t * t * t * (2.0 * q + 1.0)


@nb.njit(cache=True)
def wendland_gradient_factor(alpha_d: float, q: float, h: float) -> float:
    """Factor F with ∇ᵢW = xᵢⱼ F, zero outside 0 < q < 2."""
    if 0.0 < q < 2.0:
        return alpha_d * 5.0 * (q - 2.0) ** 3 * q / (8.0 * h * (q * h + 1e-6))
    return 0.0


@nb.njit(cache=True)
def sum_kernel_numba(pair_i: np.ndarray, pair_j: np.ndarray, distance: np.ndarray,
                     alpha_d: float, h: float, sum_w: np.ndarray, w_list: np.ndarray):
    sum_w[:] = 0.0
    for k in range(pair_i.shape[0]):
        w = wendland_value(alpha_d, distance[k] / h)
        sum_w[pair_i[k]] += w
        sum_w[pair_j[k]] += w
        w_list[k] = w


@nb.njit(cache=True)
def sum_kernel_gradient_numba(pair_i: np.ndarray, pair_j: np.ndarray, distance: np.ndarray,
                              position: np.ndarray, alpha_d: float, h: float,
                              sum_grad: np.ndarray, grad_list: np.ndarray):
    sum_grad[:, :] = 0.0
    dim = position.shape[1]
    for k in range(pair_i.shape[0]):
        i = pair_i[k]
        j = pair_j[k]
        fac = wendland_gradient_factor(alpha_d, distance[k] / h, h)
        for d in range(dim):
            g = (position[i, d] - position[j, d]) * fac
            sum_grad[i, d] += g
            sum_grad[j, d] -= g
            grad_list[k, d] = g


def sum_kernel_numba_wrapper(nlist: NeighborList, n_particles: int, alpha_d: float, h: float,
                             out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba kernel sum that matches the standard interface."""
    validate_interactions(nlist, n_particles)
    sum_w, w_list = prepare_outputs(out, n_particles, len(nlist))
    sum_kernel_numba(nlist.i, nlist.j, nlist.distance, alpha_d, h, sum_w, w_list)
    return sum_w, w_list


def sum_kernel_gradient_numba_wrapper(nlist: NeighborList, position: np.ndarray,
                                      alpha_d: float, h: float,
                                      out: Optional[Tuple[np.ndarray, np.ndarray]] = None):
    """Wrapper for Numba kernel-gradient sum that matches the standard interface."""
    n, dim = position.shape
    validate_interactions(nlist, n)
    sum_grad, grad_list = prepare_outputs(out, n, len(nlist), dim)
    sum_kernel_gradient_numba(nlist.i, nlist.j, nlist.distance,
                              np.ascontiguousarray(position, dtype=np.float64),
                              alpha_d, h, sum_grad, grad_list)
    return sum_grad, grad_list
