"""
Run configuration for weakly-compressible SPH.

Two records:
- SimulationConstants: immutable physical constants shared by every term
- SimulationMetaData: mutable run settings for the time-marching driver
"""

import numpy as np
from dataclasses import dataclass, asdict, fields
from typing import Optional


@dataclass(frozen=True)
class SimulationConstants:
    """Physical constants for one run.

    Built once at configuration time and read-only afterwards.
    """
    h: float                 # Smoothing length
    alpha_d: float           # Kernel normalization αD
    c0: float = 100.0        # Reference sound speed
    gamma: float = 7.0       # Tait exponent
    rho0: float = 1000.0     # Reference density kg/m³
    m0: float = 1.0          # Particle mass (uniform)
    alpha: float = 0.01      # Artificial viscosity coefficient
    delta: float = 0.1       # Density diffusion coefficient δᵩ
    g: float = 9.81          # Gravitational acceleration magnitude
    dim: int = 2
    vertical_axis: Optional[int] = None  # Defaults to the last axis

    def __post_init__(self):
        for name in ("h", "alpha_d", "c0", "gamma", "rho0", "m0"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.alpha < 0 or self.delta < 0:
            raise ValueError("alpha and delta must be non-negative")
        if self.dim not in (2, 3):
            raise ValueError(f"Unsupported dimension: {self.dim}")
        if self.vertical_axis is None:
            object.__setattr__(self, "vertical_axis", self.dim - 1)
        elif not 0 <= self.vertical_axis < self.dim:
            raise ValueError(f"vertical_axis {self.vertical_axis} out of range for dim={self.dim}")

    @property
    def support_radius(self) -> float:
        """Kernel support 2h."""
        return 2.0 * self.h

    @property
    def background_pressure(self) -> float:
        """Tait stiffness Cb = c0² ρ0 / γ."""
        return self.c0 ** 2 * self.rho0 / self.gamma

    @staticmethod
    def from_resolution(dx: float, dim: int = 2, fluid_height: float = 1.0,
                        coef_h: float = 1.2, coef_sound: float = 20.0,
                        **overrides) -> 'SimulationConstants':
        """Derive constants from the initial particle spacing.

        h = coef_h * sqrt(dim * dx²), m0 = rho0 * dx^dim and
        c0 = coef_sound * sqrt(g * fluid_height).

        Args:
            dx: Initial particle spacing
            dim: Spatial dimension (2 or 3)
            fluid_height: Still-water height used to size c0
            coef_h: Smoothing length coefficient
            coef_sound: Sound speed coefficient
            **overrides: Any other SimulationConstants field
        """
        from .core.kernel_vectorized import WendlandQuinticKernel

        h = coef_h * np.sqrt(dim * dx * dx)
        rho0 = overrides.pop("rho0", 1000.0)
        g = overrides.pop("g", 9.81)
        params = dict(
            h=float(h),
            alpha_d=float(WendlandQuinticKernel(dim).normalization(h)),
            c0=float(coef_sound * np.sqrt(g * fluid_height)),
            rho0=rho0,
            m0=float(rho0 * dx ** dim),
            g=g,
            dim=dim,
        )
        params.update(overrides)
        return SimulationConstants(**params)

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> 'SimulationConstants':
        """Build constants from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(SimulationConstants)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown constants: {sorted(unknown)}")
        return SimulationConstants(**data)


@dataclass
class SimulationMetaData:
    """Settings for the time-marching driver."""
    max_time: float = 1.0
    max_steps: Optional[int] = None
    cfl_number: float = 0.2
    min_dt: Optional[float] = None
    max_dt: Optional[float] = None
    use_density_diffusion: bool = True
    log_interval: int = 100       # Steps between progress messages
    neighbor_interval: int = 1    # Steps between neighbor searches
    backend: Optional[str] = None  # None keeps the current global backend

    def __post_init__(self):
        if self.max_time <= 0:
            raise ValueError("max_time must be positive")
        if not 0 < self.cfl_number <= 1:
            raise ValueError("cfl_number must be in (0, 1]")
        if self.neighbor_interval < 1 or self.log_interval < 1:
            raise ValueError("neighbor_interval and log_interval must be >= 1")
