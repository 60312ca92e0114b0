"""
Unified API for the SPH interaction engine with backend dispatch.

This module provides a clean interface that dispatches every pairwise term
to the CPU (NumPy) or Numba implementation based on the current backend.
Every term returns (per_particle, per_interaction) and accepts an optional
``out`` pair of pre-sized buffers, which it overwrites.
"""

import numpy as np
from typing import Optional, Tuple

from .core.backend import (dispatch, set_backend, get_backend, list_backends,
                           auto_select_backend, print_backend_info,
                           backend_function, for_backend, Backend)
from .core.neighbors import NeighborList
from .core.particles import ParticleArrays
from .core.kernel_vectorized import WendlandQuinticKernel, kernel_value, kernel_gradient_scaled
from .core.timestep import compute_adaptive_timestep

# CPU implementations
from .physics.aggregate import sum_kernel_vectorized, sum_kernel_gradient_vectorized
from .physics.forces_vectorized import (tait_equation_of_state,
                                        compute_artificial_viscosity_vectorized,
                                        compute_momentum_vectorized)
from .physics.density_vectorized import (compute_density_rate_vectorized,
                                         compute_density_rate_ddt_vectorized)

# Numba implementations
from .core.kernel_numba import sum_kernel_numba_wrapper, sum_kernel_gradient_numba_wrapper
from .physics.forces_numba import (compute_artificial_viscosity_numba_wrapper,
                                   compute_momentum_numba_wrapper)
from .physics.density_numba import (compute_density_rate_numba_wrapper,
                                    compute_density_rate_ddt_numba_wrapper)

Buffers = Optional[Tuple[np.ndarray, np.ndarray]]


# Register CPU implementations
@backend_function("sum_kernel")
@for_backend(Backend.CPU)
def _sum_kernel_cpu(*args, **kwargs):
    return sum_kernel_vectorized(*args, **kwargs)


@backend_function("sum_kernel_gradient")
@for_backend(Backend.CPU)
def _sum_kernel_gradient_cpu(*args, **kwargs):
    return sum_kernel_gradient_vectorized(*args, **kwargs)


@backend_function("artificial_viscosity")
@for_backend(Backend.CPU)
def _artificial_viscosity_cpu(*args, **kwargs):
    return compute_artificial_viscosity_vectorized(*args, **kwargs)


@backend_function("density_rate")
@for_backend(Backend.CPU)
def _density_rate_cpu(*args, **kwargs):
    return compute_density_rate_vectorized(*args, **kwargs)


@backend_function("density_rate_ddt")
@for_backend(Backend.CPU)
def _density_rate_ddt_cpu(*args, **kwargs):
    return compute_density_rate_ddt_vectorized(*args, **kwargs)


@backend_function("momentum_rate")
@for_backend(Backend.CPU)
def _momentum_rate_cpu(*args, **kwargs):
    return compute_momentum_vectorized(*args, **kwargs)


# Register Numba implementations
@backend_function("sum_kernel")
@for_backend(Backend.NUMBA)
def _sum_kernel_numba(*args, **kwargs):
    return sum_kernel_numba_wrapper(*args, **kwargs)


@backend_function("sum_kernel_gradient")
@for_backend(Backend.NUMBA)
def _sum_kernel_gradient_numba(*args, **kwargs):
    return sum_kernel_gradient_numba_wrapper(*args, **kwargs)


@backend_function("artificial_viscosity")
@for_backend(Backend.NUMBA)
def _artificial_viscosity_numba(*args, **kwargs):
    return compute_artificial_viscosity_numba_wrapper(*args, **kwargs)


@backend_function("density_rate")
@for_backend(Backend.NUMBA)
def _density_rate_numba(*args, **kwargs):
    return compute_density_rate_numba_wrapper(*args, **kwargs)


@backend_function("density_rate_ddt")
@for_backend(Backend.NUMBA)
def _density_rate_ddt_numba(*args, **kwargs):
    return compute_density_rate_ddt_numba_wrapper(*args, **kwargs)


@backend_function("momentum_rate")
@for_backend(Backend.NUMBA)
def _momentum_rate_numba(*args, **kwargs):
    return compute_momentum_numba_wrapper(*args, **kwargs)


# Public API functions that dispatch to appropriate backend
def sum_kernel(nlist: NeighborList, n_particles: int, alpha_d: float, h: float,
               out: Buffers = None, backend: Optional[str] = None):
    """ΣⱼWᵢⱼ per particle and Wᵢⱼ per interaction.

    Args:
        nlist: Interaction records
        n_particles: Number of particles N
        alpha_d: Kernel normalization αD
        h: Smoothing length
        out: Optional (per_particle, per_interaction) buffers
        backend: Override backend ('cpu', 'numba', or None for current)
    """
    return dispatch("sum_kernel", nlist, n_particles, alpha_d, h, out=out, backend=backend)


def sum_kernel_gradient(nlist: NeighborList, position: np.ndarray, alpha_d: float, h: float,
                        out: Buffers = None, backend: Optional[str] = None):
    """Σⱼ∇ᵢWᵢⱼ per particle and ∇ᵢWᵢⱼ per interaction."""
    return dispatch("sum_kernel_gradient", nlist, position, alpha_d, h,
                    out=out, backend=backend)


def pressure(density, c0: float, gamma: float, rho0: float):
    """Tait pressure for one density or an array of densities."""
    return tait_equation_of_state(density, c0, gamma, rho0)


def artificial_viscosity(nlist: NeighborList, position: np.ndarray, h: float,
                         density: np.ndarray, alpha: float, velocity: np.ndarray,
                         c0: float, m0: float, kernel_gradient_list: np.ndarray,
                         out: Buffers = None, backend: Optional[str] = None):
    """Monaghan artificial viscosity acceleration."""
    return dispatch("artificial_viscosity", nlist, position, h, density, alpha, velocity,
                    c0, m0, kernel_gradient_list, out=out, backend=backend)


def density_rate(nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
                 velocity: np.ndarray, kernel_gradient_list: np.ndarray,
                 out: Buffers = None, backend: Optional[str] = None):
    """Continuity equation without density diffusion."""
    return dispatch("density_rate", nlist, position, m, density, velocity,
                    kernel_gradient_list, out=out, backend=backend)


def density_rate_ddt(nlist: NeighborList, position: np.ndarray, h: float, m0: float,
                     delta: float, c0: float, gamma: float, g: float, rho0: float,
                     density: np.ndarray, velocity: np.ndarray,
                     kernel_gradient_list: np.ndarray, motion_limiter: np.ndarray,
                     vertical_axis: Optional[int] = None,
                     out: Buffers = None, backend: Optional[str] = None):
    """Continuity equation with delta-SPH density diffusion."""
    return dispatch("density_rate_ddt", nlist, position, h, m0, delta, c0, gamma, g, rho0,
                    density, velocity, kernel_gradient_list, motion_limiter,
                    vertical_axis=vertical_axis, out=out, backend=backend)


def momentum_rate(nlist: NeighborList, position: np.ndarray, m: float, density: np.ndarray,
                  kernel_gradient_list: np.ndarray, c0: float, gamma: float, rho0: float,
                  out: Buffers = None, backend: Optional[str] = None):
    """Pressure-gradient acceleration (viscosity excluded)."""
    return dispatch("momentum_rate", nlist, position, m, density, kernel_gradient_list,
                    c0, gamma, rho0, out=out, backend=backend)


__all__ = [
    # Pairwise terms
    'sum_kernel',
    'sum_kernel_gradient',
    'pressure',
    'artificial_viscosity',
    'density_rate',
    'density_rate_ddt',
    'momentum_rate',
    'compute_adaptive_timestep',

    # Pointwise kernel
    'kernel_value',
    'kernel_gradient_scaled',

    # Backend management
    'set_backend',
    'get_backend',
    'list_backends',
    'auto_select_backend',
    'print_backend_info',

    # Core classes
    'NeighborList',
    'ParticleArrays',
    'WendlandQuinticKernel'
]
