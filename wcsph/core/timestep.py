"""
Adaptive timestepping for weakly-compressible SPH.

Computes a stable timestep from the CFL condition, the force (acceleration)
condition and the artificial-viscosity condition.
"""

import numpy as np
from typing import Optional

from ..errors import DomainViolation

# Accelerations below this are treated as zero by the force criterion
_ACCEL_FLOOR = 1e-12


def _max_norm(vectors: np.ndarray) -> float:
    if len(vectors) == 0:
        return 0.0
    return float(np.sqrt(np.max(np.einsum('nd,nd->n', vectors, vectors))))


def compute_adaptive_timestep(velocity: np.ndarray, acceleration: np.ndarray,
                              h: float, c0: float, alpha: float,
                              cfl_number: float = 0.2,
                              force_factor: float = 0.25,
                              viscous_factor: float = 0.25,
                              min_dt: Optional[float] = None,
                              max_dt: Optional[float] = None) -> float:
    """Compute adaptive timestep based on CFL and other stability criteria.

    dt = cfl_number * min(dt_cfl, dt_force, dt_viscous)

    - dt_cfl = h / (c0 + v_max): no particle crosses more than a fraction
      of the support radius
    - dt_force = force_factor * sqrt(h / a_max)
    - dt_viscous = viscous_factor * h / (c0 * alpha)

    The result shrinks as v_max, c0 or alpha grow and grows with h.

    Args:
        velocity: Particle velocities, shape (N, D)
        acceleration: Particle accelerations, shape (N, D)
        h: Smoothing length
        c0: Reference sound speed
        alpha: Artificial viscosity coefficient
        cfl_number: Overall safety factor (< 1)
        force_factor: Force criterion safety factor
        viscous_factor: Viscous criterion safety factor
        min_dt: Optional lower clamp
        max_dt: Optional upper clamp

    Returns:
        Timestep

    Raises:
        DomainViolation: the state yields a non-finite or non-positive step
    """
    limits = compute_timestep_limits(velocity, acceleration, h, c0, alpha,
                                     force_factor, viscous_factor)
    dt = cfl_number * min(limits.values())

    if min_dt is not None or max_dt is not None:
        dt = float(np.clip(dt, min_dt, max_dt))

    if not np.isfinite(dt) or dt <= 0:
        raise DomainViolation(f"Invalid timestep {dt} (limits: {limits})")
    return dt


def compute_timestep_limits(velocity: np.ndarray, acceleration: np.ndarray,
                            h: float, c0: float, alpha: float,
                            force_factor: float = 0.25,
                            viscous_factor: float = 0.25) -> dict:
    """Per-criterion timestep limits before the CFL safety factor."""
    v_max = _max_norm(velocity)
    a_max = _max_norm(acceleration)

    limits = {'cfl': h / (c0 + v_max)}
    if a_max > _ACCEL_FLOOR:
        limits['force'] = force_factor * np.sqrt(h / a_max)
    if alpha > 0:
        limits['viscous'] = viscous_factor * h / (c0 * alpha)
    return limits


def compute_timestep_diagnostics(velocity: np.ndarray, acceleration: np.ndarray,
                                 h: float, c0: float, alpha: float,
                                 current_dt: float, cfl_number: float = 0.2) -> dict:
    """Compute detailed timestep diagnostics for debugging.

    Returns dict with:
        - limiting_factor: 'cfl', 'force', or 'viscous'
        - optimal_dt: timestep the estimator would choose
        - safety_margin: ratio of optimal_dt to current_dt
    """
    limits = compute_timestep_limits(velocity, acceleration, h, c0, alpha)
    limiting = min(limits, key=limits.get)
    optimal_dt = cfl_number * limits[limiting]
    return {
        'current_dt': current_dt,
        'limiting_factor': limiting,
        'optimal_dt': optimal_dt,
        'safety_margin': optimal_dt / current_dt if current_dt > 0 else np.inf,
        'limits': limits,
        'max_velocity': _max_norm(velocity),
        'max_acceleration': _max_norm(acceleration),
    }
