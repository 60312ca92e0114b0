"""
Pairwise field aggregation over a neighbor pair list.

Every term produces two outputs:
- a per-particle array, the sum over all interactions touching the particle
- a per-interaction array, the i-centric value for reuse downstream

Each pair record writes to both of its particles, so accumulation uses
numpy.add.at (unbuffered, deterministic order) rather than fancy-index
assignment, which would drop repeated indices.
"""

import numpy as np
from typing import Optional, Tuple

from ..core.kernel_vectorized import kernel_value, kernel_gradient_scaled
from ..core.neighbors import NeighborList, validate_interactions
from ..core.particles import check_length
from ..errors import ShapeMismatch


def accumulate_pairwise(out: np.ndarray, nlist: NeighborList,
                        contribution_i: np.ndarray, contribution_j: np.ndarray) -> np.ndarray:
    """Overwrite out with the per-particle sums of pair contributions.

    Args:
        out: Per-particle buffer, shape (N,) or (N, D); zeroed first
        nlist: Interaction records
        contribution_i: Value added to particle i of each record
        contribution_j: Value added to particle j of each record

    Returns:
        out
    """
    out.fill(0)
    np.add.at(out, nlist.i, contribution_i)
    np.add.at(out, nlist.j, contribution_j)
    return out


def prepare_outputs(out: Optional[Tuple[np.ndarray, np.ndarray]], n_particles: int,
                    n_interactions: int, dim: Optional[int] = None
                    ) -> Tuple[np.ndarray, np.ndarray]:
    """Return (per_particle, per_interaction) buffers, allocating if needed.

    Caller-supplied buffers must already have the right lengths, trailing
    shape ((dim,) for vector terms, none for scalar terms) and float64 dtype.

    Raises:
        ShapeMismatch: a supplied buffer does not fit the term
    """
    if out is None:
        if dim is None:
            return np.zeros(n_particles), np.zeros(n_interactions)
        return np.zeros((n_particles, dim)), np.zeros((n_interactions, dim))

    per_particle, per_interaction = out
    trailing = () if dim is None else (dim,)
    for name, buffer, n in (('per-particle output', per_particle, n_particles),
                            ('per-interaction output', per_interaction, n_interactions)):
        check_length(name, buffer, n)
        if buffer.shape[1:] != trailing:
            raise ShapeMismatch(f"{name} has shape {buffer.shape}, expected {(n,) + trailing}")
        if buffer.dtype != np.float64:
            raise ShapeMismatch(f"{name} has dtype {buffer.dtype}, expected float64")
    return per_particle, per_interaction


def check_particle_arrays(n_particles: int, **arrays: np.ndarray):
    """Validate named per-particle arrays against the particle count."""
    for name, array in arrays.items():
        check_length(name, array, n_particles)


def check_interaction_array(name: str, array: np.ndarray, nlist: NeighborList):
    if len(array) != len(nlist):
        raise ShapeMismatch(f"{name} has {len(array)} entries, "
                            f"pair list has {len(nlist)}")


def sum_kernel_vectorized(nlist: NeighborList, n_particles: int, alpha_d: float, h: float,
                          out: Optional[Tuple[np.ndarray, np.ndarray]] = None
                          ) -> Tuple[np.ndarray, np.ndarray]:
    """ΣⱼWᵢⱼ per particle and Wᵢⱼ per interaction.

    Both particles of a pair receive +W.
    """
    validate_interactions(nlist, n_particles)
    sum_w, w_list = prepare_outputs(out, n_particles, len(nlist))

    w_list[:] = kernel_value(alpha_d, nlist.distance / h)
    accumulate_pairwise(sum_w, nlist, w_list, w_list)
    return sum_w, w_list


def sum_kernel_gradient_vectorized(nlist: NeighborList, position: np.ndarray,
                                   alpha_d: float, h: float,
                                   out: Optional[Tuple[np.ndarray, np.ndarray]] = None
                                   ) -> Tuple[np.ndarray, np.ndarray]:
    """Σⱼ∇ᵢWᵢⱼ per particle and ∇ᵢWᵢⱼ per interaction.

    Particle i receives +∇W, particle j receives -∇W.
    """
    n, dim = position.shape
    validate_interactions(nlist, n)
    sum_grad, grad_list = prepare_outputs(out, n, len(nlist), dim)

    xij = nlist.separations(position)
    grad_list[:] = kernel_gradient_scaled(alpha_d, nlist.distance / h, xij, h)
    accumulate_pairwise(sum_grad, nlist, grad_list, -grad_list)
    return sum_grad, grad_list
