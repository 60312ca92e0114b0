"""Weakly-compressible SPH (Smoothed Particle Hydrodynamics) interaction engine."""

from . import core
from . import physics

# Import API to trigger backend registration
from . import api

from .api import (
    # Pairwise terms
    sum_kernel,
    sum_kernel_gradient,
    pressure,
    artificial_viscosity,
    density_rate,
    density_rate_ddt,
    momentum_rate,
    compute_adaptive_timestep,

    # Pointwise kernel
    kernel_value,
    kernel_gradient_scaled,

    # Backend management
    set_backend,
    get_backend,
    list_backends,
    auto_select_backend,
    print_backend_info,

    # Core classes
    NeighborList,
    ParticleArrays,
    WendlandQuinticKernel
)
from .core.particles import reset_arrays, resize_buffers
from .config import SimulationConstants, SimulationMetaData
from .errors import SPHError, DomainViolation, ShapeMismatch
from .simulation import SPHSimulation

__version__ = "0.1.0"

__all__ = [
    # Modules
    'core',
    'physics',

    # API functions
    'sum_kernel',
    'sum_kernel_gradient',
    'pressure',
    'artificial_viscosity',
    'density_rate',
    'density_rate_ddt',
    'momentum_rate',
    'compute_adaptive_timestep',
    'kernel_value',
    'kernel_gradient_scaled',
    'reset_arrays',
    'resize_buffers',

    # Backend management
    'set_backend',
    'get_backend',
    'list_backends',
    'auto_select_backend',
    'print_backend_info',

    # Core classes
    'NeighborList',
    'ParticleArrays',
    'WendlandQuinticKernel',
    'SimulationConstants',
    'SimulationMetaData',
    'SPHSimulation',

    # Errors
    'SPHError',
    'DomainViolation',
    'ShapeMismatch'
]
