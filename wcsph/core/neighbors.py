"""
Neighbor pair list: one (i, j, distance) record per interacting pair.

Each unordered pair appears once. Terms derive both particles'
contributions from the single record.
"""

import numpy as np
from dataclasses import dataclass
from typing import Iterable, Tuple

from ..errors import ShapeMismatch


@dataclass
class NeighborList:
    """Aligned arrays of interaction records."""
    i: np.ndarray          # shape: (M,) int64
    j: np.ndarray          # shape: (M,) int64
    distance: np.ndarray   # shape: (M,) float64

    def __post_init__(self):
        self.i = np.ascontiguousarray(self.i, dtype=np.int64)
        self.j = np.ascontiguousarray(self.j, dtype=np.int64)
        self.distance = np.ascontiguousarray(self.distance, dtype=np.float64)

    def __len__(self) -> int:
        return len(self.i)

    def __iter__(self):
        return zip(self.i.tolist(), self.j.tolist(), self.distance.tolist())

    @staticmethod
    def empty() -> 'NeighborList':
        return NeighborList(np.zeros(0, np.int64), np.zeros(0, np.int64), np.zeros(0))

    @staticmethod
    def from_pairs(pairs: Iterable[Tuple[int, int, float]]) -> 'NeighborList':
        """Build from an iterable of (i, j, distance) tuples."""
        records = list(pairs)
        if not records:
            return NeighborList.empty()
        i, j, d = zip(*records)
        return NeighborList(np.array(i), np.array(j), np.array(d))

    def separations(self, position: np.ndarray) -> np.ndarray:
        """xᵢⱼ = xᵢ - xⱼ for every record, shape (M, D)."""
        return position[self.i] - position[self.j]


def validate_interactions(nlist: NeighborList, n_particles: int):
    """Check the pair list against the particle count.

    Raises:
        ShapeMismatch: misaligned arrays, out-of-range or self pairs
    """
    m = len(nlist.i)
    if len(nlist.j) != m or len(nlist.distance) != m:
        raise ShapeMismatch(
            f"Pair list arrays misaligned: i={m}, j={len(nlist.j)}, "
            f"distance={len(nlist.distance)}")
    if m == 0:
        return
    lo = min(nlist.i.min(), nlist.j.min())
    hi = max(nlist.i.max(), nlist.j.max())
    if lo < 0 or hi >= n_particles:
        raise ShapeMismatch(
            f"Pair list references particle ids in [{lo}, {hi}] "
            f"but only {n_particles} particles exist")
    if np.any(nlist.i == nlist.j):
        raise ShapeMismatch("Pair list contains self-interactions (i == j)")
