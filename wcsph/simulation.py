"""
Time-marching driver for weakly-compressible SPH.

One step:
  neighbor search -> ΣW, Σ∇W -> pressure check -> density rate and
  acceleration -> adaptive Δt -> symplectic update
"""

import logging
import time
from typing import Callable, Optional

import numpy as np

from . import api
from .config import SimulationConstants, SimulationMetaData
from .core.integrator_vectorized import integrate_symplectic_euler_vectorized
from .core.neighbors import NeighborList
from .core.particles import ParticleArrays, check_length, resize_buffers
from .core.spatial_hash_vectorized import VectorizedSpatialHash
from .core.timestep import compute_adaptive_timestep, compute_timestep_diagnostics
from .errors import SPHError

logger = logging.getLogger(__name__)


class SPHSimulation:
    """Owns the particle buffers and advances them in time."""

    def __init__(self, particles: ParticleArrays, motion_limiter: np.ndarray,
                 constants: SimulationConstants,
                 metadata: Optional[SimulationMetaData] = None):
        if particles.dim != constants.dim:
            raise ValueError(f"Particles are {particles.dim}D but constants are {constants.dim}D")
        particles.validate()
        check_length("motion_limiter", motion_limiter, particles.n_particles)

        self.particles = particles
        self.motion_limiter = np.asarray(motion_limiter, dtype=np.float64)
        self.constants = constants
        self.metadata = metadata or SimulationMetaData()

        self.time = 0.0
        self.step_count = 0
        self.dt = 0.0
        self.nlist: Optional[NeighborList] = None
        self.spatial_hash = VectorizedSpatialHash(constants.support_radius, dim=constants.dim)

        n = particles.n_particles
        self.pressure = np.zeros(n)
        self.density_rate = np.zeros(n)
        self.viscous_acceleration = np.zeros((n, constants.dim))

        # Per-interaction buffers, resized when the pair count changes
        self.kernel_list = np.zeros(0)
        self.kernel_gradient_list = np.zeros((0, constants.dim))
        self.density_rate_list = np.zeros(0)
        self.acceleration_list = np.zeros((0, constants.dim))
        self.viscosity_list = np.zeros((0, constants.dim))

    # ------------------------------------------------------------------
    # Neighbor pairs
    # ------------------------------------------------------------------
    def update_neighbors(self):
        """Run a fresh cell-list search over the current positions."""
        position = self.particles.position
        self.spatial_hash.build_vectorized(position)
        self.nlist = self.spatial_hash.query_pairs_vectorized(position, self.constants.support_radius)

    def _refresh_pairs(self):
        """Recompute distances of a reused pair list and drop pairs that left the support."""
        xij = self.nlist.separations(self.particles.position)
        distance = np.sqrt(np.einsum('md,md->m', xij, xij))
        keep = distance <= self.constants.support_radius
        self.nlist = NeighborList(self.nlist.i[keep], self.nlist.j[keep], distance[keep])

    def _resize_interaction_buffers(self, m: int):
        (self.kernel_list, self.kernel_gradient_list, self.density_rate_list,
         self.acceleration_list, self.viscosity_list) = resize_buffers(
            self.kernel_list, self.kernel_gradient_list, self.density_rate_list,
            self.acceleration_list, self.viscosity_list, n=m)

    # ------------------------------------------------------------------
    # Particle count changes
    # ------------------------------------------------------------------
    def resize(self, n_particles: int):
        """Resize every per-particle buffer; new slots must be filled by the caller."""
        self.particles.resize(n_particles)
        (self.motion_limiter, self.pressure, self.density_rate,
         self.viscous_acceleration) = resize_buffers(
            self.motion_limiter, self.pressure, self.density_rate,
            self.viscous_acceleration, n=n_particles)
        self.nlist = None

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------
    def compute_rates(self):
        """Fill kernel sums, density rate and acceleration for the current state."""
        c = self.constants
        p = self.particles
        backend = self.metadata.backend

        if self.nlist is None or self.step_count % self.metadata.neighbor_interval == 0:
            self.update_neighbors()
        else:
            self._refresh_pairs()
        nlist = self.nlist
        self._resize_interaction_buffers(len(nlist))

        api.sum_kernel(nlist, p.n_particles, c.alpha_d, c.h,
                       out=(p.kernel, self.kernel_list), backend=backend)
        api.sum_kernel_gradient(nlist, p.position, c.alpha_d, c.h,
                                out=(p.kernel_gradient, self.kernel_gradient_list),
                                backend=backend)

        self.pressure[:] = api.pressure(p.density, c.c0, c.gamma, c.rho0)

        if self.metadata.use_density_diffusion:
            api.density_rate_ddt(nlist, p.position, c.h, c.m0, c.delta, c.c0, c.gamma, c.g,
                                 c.rho0, p.density, p.velocity, self.kernel_gradient_list,
                                 self.motion_limiter, vertical_axis=c.vertical_axis,
                                 out=(self.density_rate, self.density_rate_list),
                                 backend=backend)
        else:
            api.density_rate(nlist, p.position, c.m0, p.density, p.velocity,
                             self.kernel_gradient_list,
                             out=(self.density_rate, self.density_rate_list), backend=backend)

        api.momentum_rate(nlist, p.position, c.m0, p.density, self.kernel_gradient_list,
                          c.c0, c.gamma, c.rho0,
                          out=(p.acceleration, self.acceleration_list), backend=backend)
        api.artificial_viscosity(nlist, p.position, c.h, p.density, c.alpha, p.velocity,
                                 c.c0, c.m0, self.kernel_gradient_list,
                                 out=(self.viscous_acceleration, self.viscosity_list),
                                 backend=backend)

        p.acceleration += self.viscous_acceleration
        p.acceleration[:, c.vertical_axis] -= c.g

    def step(self) -> float:
        """Advance one step and return the Δt used.

        Raises:
            SPHError: the step failed; state is left as it was mid-step
        """
        c = self.constants
        meta = self.metadata
        try:
            self.compute_rates()
            self.dt = compute_adaptive_timestep(
                self.particles.velocity, self.particles.acceleration, c.h, c.c0, c.alpha,
                cfl_number=meta.cfl_number, min_dt=meta.min_dt, max_dt=meta.max_dt)
            integrate_symplectic_euler_vectorized(self.particles, self.density_rate, self.dt,
                                                  self.motion_limiter, rho0=c.rho0)
        except SPHError:
            logger.error("Step %d failed at t=%.6g", self.step_count, self.time)
            raise

        self.time += self.dt
        self.step_count += 1

        if logger.isEnabledFor(logging.DEBUG):
            diag = compute_timestep_diagnostics(
                self.particles.velocity, self.particles.acceleration, c.h, c.c0, c.alpha,
                self.dt, cfl_number=meta.cfl_number)
            logger.debug("dt=%.3e limited by %s (v_max=%.3g, a_max=%.3g)", self.dt,
                         diag['limiting_factor'], diag['max_velocity'], diag['max_acceleration'])
        return self.dt

    def run(self, callback: Optional[Callable[['SPHSimulation'], None]] = None) -> 'SPHSimulation':
        """Step until max_time or max_steps is reached.

        Args:
            callback: Called after every step with the simulation
        """
        meta = self.metadata
        logger.info("Running %d particles to t=%g (backend %s)", self.particles.n_particles,
                    meta.max_time, meta.backend or api.get_backend())
        step_times = []
        while self.time < meta.max_time:
            if meta.max_steps is not None and self.step_count >= meta.max_steps:
                break
            t0 = time.perf_counter()
            self.step()
            step_times.append(time.perf_counter() - t0)

            if callback is not None:
                callback(self)
            if self.step_count % meta.log_interval == 0:
                avg_time = np.mean(step_times[-meta.log_interval:])
                logger.info("Step %d: t=%.5f dt=%.3e pairs=%d (%.1f ms/step)",
                            self.step_count, self.time, self.dt, len(self.nlist),
                            avg_time * 1000)
        return self
