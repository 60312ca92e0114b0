"""Physics terms for weakly-compressible SPH: EOS, viscosity, continuity and momentum."""

from .aggregate import (
    accumulate_pairwise,
    sum_kernel_vectorized,
    sum_kernel_gradient_vectorized
)
from .forces_vectorized import (
    tait_equation_of_state,
    compute_artificial_viscosity_vectorized,
    compute_momentum_vectorized
)
from .density_vectorized import (
    compute_density_rate_vectorized,
    compute_density_rate_ddt_vectorized
)

__all__ = [
    # Aggregation
    'accumulate_pairwise',
    'sum_kernel_vectorized',
    'sum_kernel_gradient_vectorized',
    # Forces
    'tait_equation_of_state',
    'compute_artificial_viscosity_vectorized',
    'compute_momentum_vectorized',
    # Density
    'compute_density_rate_vectorized',
    'compute_density_rate_ddt_vectorized'
]
