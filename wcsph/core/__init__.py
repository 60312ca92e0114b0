"""Core SPH components: particles, kernels, neighbor pairs, timestep and integration."""

from .particles import ParticleArrays, reset_arrays, resize_buffers
from .kernel_vectorized import (
    WendlandQuinticKernel,
    kernel_value,
    kernel_gradient_scaled
)
from .neighbors import NeighborList, validate_interactions
from .spatial_hash_vectorized import VectorizedSpatialHash, find_neighbor_pairs
from .integrator_vectorized import integrate_symplectic_euler_vectorized
from .timestep import compute_adaptive_timestep, compute_timestep_diagnostics

__all__ = [
    'ParticleArrays',
    'reset_arrays',
    'resize_buffers',
    'WendlandQuinticKernel',
    'kernel_value',
    'kernel_gradient_scaled',
    'NeighborList',
    'validate_interactions',
    'VectorizedSpatialHash',
    'find_neighbor_pairs',
    'integrate_symplectic_euler_vectorized',
    'compute_adaptive_timestep',
    'compute_timestep_diagnostics'
]
