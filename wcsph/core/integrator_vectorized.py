"""
Vectorized time integration for SPH particles.

Symplectic Euler (kick-drift): velocity first, then position with the new
velocity, then density from its rate. Fixed particles (motion limiter 0)
keep their position and velocity.
"""

import numpy as np
from typing import Optional

from .particles import ParticleArrays, check_length


def integrate_symplectic_euler_vectorized(particles: ParticleArrays, drhodt: np.ndarray,
                                          dt: float, motion_limiter: np.ndarray,
                                          rho0: Optional[float] = None):
    """Advance velocity, position and density by one step.

    Args:
        particles: Particle arrays with acceleration computed
        drhodt: Density rate per particle, shape (N,)
        dt: Time step
        motion_limiter: Per-particle mobility, 1 free and 0 fixed
        rho0: If given, fixed particles never drop below this density
    """
    n = particles.n_particles
    check_length("drhodt", drhodt, n)
    check_length("motion_limiter", motion_limiter, n)
    mobility = motion_limiter[:, np.newaxis]

    particles.velocity += particles.acceleration * (dt * mobility)
    particles.position += particles.velocity * (dt * mobility)
    particles.density += drhodt * dt

    if rho0 is not None:
        fixed = motion_limiter == 0
        particles.density[fixed] = np.maximum(particles.density[fixed], rho0)
