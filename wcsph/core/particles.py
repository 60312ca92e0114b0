"""
Particle data structure using the Structure-of-Arrays (SoA) pattern.

ParticleArrays is the only owner of per-particle storage. Physics terms
write into these arrays; they never allocate per-particle buffers of their own
when one is passed in.
"""

import numpy as np
from dataclasses import dataclass, fields
from typing import Tuple

from ..errors import ShapeMismatch


def reset_arrays(*arrays: np.ndarray):
    """Fill every array with zero in place."""
    for array in arrays:
        array.fill(0)


def resize_buffers(*arrays: np.ndarray, n: int) -> Tuple[np.ndarray, ...]:
    """Make every array exactly n entries long.

    Arrays that already have length n are returned as-is (same object);
    others are replaced by a new array of the same dtype and trailing shape.
    Only the length is guaranteed, not the contents.

    Returns:
        Tuple of arrays in argument order
    """
    if n < 0:
        raise ValueError(f"Buffer length must be non-negative, got {n}")
    resized = []
    for array in arrays:
        if len(array) != n:
            new = np.zeros((n,) + array.shape[1:], dtype=array.dtype)
            keep = min(n, len(array))
            new[:keep] = array[:keep]
            array = new
        resized.append(array)
    return tuple(resized)


def check_length(name: str, array: np.ndarray, n: int):
    """Raise ShapeMismatch if array is not n entries long."""
    if len(array) != n:
        raise ShapeMismatch(f"{name} has {len(array)} entries, expected {n}")


@dataclass
class ParticleArrays:
    """Per-particle buffers for N particles in D dimensions.

    All arrays are float64. Vector fields have shape (N, D).
    """
    # Integrated state
    position: np.ndarray        # shape: (N, D)
    velocity: np.ndarray        # shape: (N, D)
    density: np.ndarray         # shape: (N,)

    # Derived each step
    acceleration: np.ndarray    # shape: (N, D)
    kernel: np.ndarray          # shape: (N,)   ΣⱼWᵢⱼ
    kernel_gradient: np.ndarray  # shape: (N, D) Σⱼ∇ᵢWᵢⱼ

    @staticmethod
    def allocate(n_particles: int, dim: int = 2) -> 'ParticleArrays':
        """Allocate zeroed buffers for n_particles."""
        if dim not in (2, 3):
            raise ValueError(f"Unsupported dimension: {dim}")
        return ParticleArrays(
            position=np.zeros((n_particles, dim)),
            velocity=np.zeros((n_particles, dim)),
            density=np.zeros(n_particles),
            acceleration=np.zeros((n_particles, dim)),
            kernel=np.zeros(n_particles),
            kernel_gradient=np.zeros((n_particles, dim)),
        )

    @property
    def n_particles(self) -> int:
        return len(self.position)

    @property
    def dim(self) -> int:
        return self.position.shape[1]

    def arrays(self) -> Tuple[np.ndarray, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    def reset_derived(self):
        """Zero the quantities recomputed every step."""
        reset_arrays(self.acceleration, self.kernel, self.kernel_gradient)

    def resize(self, n_particles: int):
        """Resize every buffer to n_particles (no-op when unchanged)."""
        names = [f.name for f in fields(self)]
        for name, array in zip(names, resize_buffers(*self.arrays(), n=n_particles)):
            setattr(self, name, array)

    def validate(self):
        """Check every buffer against the particle count and dimension."""
        n = self.n_particles
        d = self.dim
        for f in fields(self):
            array = getattr(self, f.name)
            check_length(f.name, array, n)
            if array.ndim == 2 and array.shape[1] != d:
                raise ShapeMismatch(f"{f.name} has dimension {array.shape[1]}, expected {d}")
