"""
Vectorized spatial hashing for O(N) neighbor pair searches.

This implementation uses:
- Cell lists keyed by occupied cell only, in 2D or 3D
- Particles sorted by cell id for cache coherence
- Per-cell vectorized distance evaluation

Only occupied cells are stored, so memory does not depend on the extent of
the particle cloud and a single stray particle cannot blow up the grid.
"""

import itertools
import logging
import math

import numpy as np

from .neighbors import NeighborList
from ..errors import DomainViolation

logger = logging.getLogger(__name__)

# Cell coordinates must stay well inside int64
_MAX_CELL_SPAN = 2.0 ** 62


class VectorizedSpatialHash:
    """Cell-list search producing a unique-pair interaction list.

    Cells are integer coordinates relative to the lower corner of the
    particles' bounding box at build time; only occupied cells get an id.
    """

    def __init__(self, cell_size: float, dim: int = 2):
        """Initialize spatial hash grid.

        Args:
            cell_size: Size of each cell (typically the 2h support radius)
            dim: Spatial dimension (2 or 3)
        """
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self.dim = dim
        self.domain_min = np.zeros(dim)
        self.grid_shape = (1,) * dim
        self.occupied_cells = np.zeros((0, dim), dtype=np.int64)
        self.sorted_indices = np.zeros(0, dtype=np.int64)
        self.sorted_cells = np.zeros(0, dtype=np.int64)
        self._cell_ids = {}

    def build_vectorized(self, position: np.ndarray):
        """Assign particles to cells and sort them by cell id.

        Args:
            position: Particle positions, shape (N, D)

        Raises:
            DomainViolation: a position is not finite or the cloud spans
                more cells than int64 coordinates can address
        """
        self._cell_ids = {}
        if len(position) == 0:
            self.occupied_cells = np.zeros((0, self.dim), dtype=np.int64)
            self.sorted_indices = np.zeros(0, dtype=np.int64)
            self.sorted_cells = np.zeros(0, dtype=np.int64)
            return

        if not np.all(np.isfinite(position)):
            bad = int(np.flatnonzero(~np.all(np.isfinite(position), axis=1))[0])
            raise DomainViolation(f"Particle {bad} has non-finite position {position[bad]}")

        self.domain_min = position.min(axis=0)
        span = (position.max(axis=0) - self.domain_min) / self.cell_size
        if np.any(span >= _MAX_CELL_SPAN):
            raise DomainViolation(
                f"Particle cloud spans {span.max():.3g} cells; a particle has likely diverged")

        cells = np.floor((position - self.domain_min) / self.cell_size).astype(np.int64)
        self.grid_shape = tuple(int(c) for c in cells.max(axis=0) + 1)

        # Lexicographically sorted occupied cells; cell id = row in this table
        self.occupied_cells, cell_ids = np.unique(cells, axis=0, return_inverse=True)
        cell_ids = cell_ids.reshape(-1)
        self._cell_ids = {tuple(c): k for k, c in enumerate(self.occupied_cells.tolist())}

        self.sorted_indices = np.argsort(cell_ids, kind="stable")
        self.sorted_cells = cell_ids[self.sorted_indices]

        logger.debug("Spatial hash: %d occupied cells of %s, cell size %g",
                     len(self.occupied_cells), "x".join(str(s) for s in self.grid_shape),
                     self.cell_size)

    def get_cell_particles(self, cell) -> np.ndarray:
        """Get particle indices in a specific cell (empty if unoccupied)."""
        cell_id = self._cell_ids.get(tuple(int(c) for c in cell))
        if cell_id is None:
            return np.zeros(0, dtype=np.int64)
        start = np.searchsorted(self.sorted_cells, cell_id, side="left")
        end = np.searchsorted(self.sorted_cells, cell_id, side="right")
        return self.sorted_indices[start:end]

    def query_pairs_vectorized(self, position: np.ndarray,
                               search_radius: float) -> NeighborList:
        """Find every pair closer than search_radius, each pair once (i < j).

        Args:
            position: Particle positions, shape (N, D)
            search_radius: Inclusive cutoff (the 2h kernel support)

        Returns:
            NeighborList sorted by (i, j)
        """
        if len(self.sorted_cells) == 0:
            return NeighborList.empty()

        n_search = int(np.ceil(search_radius / self.cell_size))
        offsets = np.array(list(itertools.product(range(-n_search, n_search + 1),
                                                  repeat=self.dim)))

        starts = np.searchsorted(self.sorted_cells, np.arange(len(self.occupied_cells)))
        ends = np.append(starts[1:], len(self.sorted_cells))

        found_i, found_j, found_d = [], [], []
        for coord, start, end in zip(self.occupied_cells, starts, ends):
            members = self.sorted_indices[start:end]
            candidates = np.concatenate([self.get_cell_particles(coord + off)
                                         for off in offsets])

            diff = position[members][:, np.newaxis, :] - position[candidates][np.newaxis, :, :]
            distances = np.sqrt(np.sum(diff * diff, axis=-1))

            mask = (distances <= search_radius) & (members[:, np.newaxis] < candidates[np.newaxis, :])
            a, b = np.nonzero(mask)
            if len(a):
                found_i.append(members[a])
                found_j.append(candidates[b])
                found_d.append(distances[a, b])

        if not found_i:
            return NeighborList.empty()

        i = np.concatenate(found_i)
        j = np.concatenate(found_j)
        d = np.concatenate(found_d)
        order = np.lexsort((j, i))
        return NeighborList(i[order], j[order], d[order])

    def get_statistics(self) -> dict:
        """Get hash table statistics for debugging."""
        _, counts = np.unique(self.sorted_cells, return_counts=True)
        n_cells = math.prod(self.grid_shape)
        return {
            'total_cells': n_cells,
            'occupied_cells': len(counts),
            'occupancy_rate': len(counts) / n_cells,
            'max_particles_per_cell': int(counts.max()) if len(counts) else 0,
            'mean_particles_per_occupied_cell': float(counts.mean()) if len(counts) else 0.0,
        }


def find_neighbor_pairs(position: np.ndarray, search_radius: float,
                        cell_size: float = None) -> NeighborList:
    """Convenience function for neighbor search.

    Args:
        position: Particle positions, shape (N, D)
        search_radius: Inclusive cutoff distance
        cell_size: Cell size (defaults to search_radius)
    """
    spatial_hash = VectorizedSpatialHash(cell_size or search_radius, dim=position.shape[1])
    spatial_hash.build_vectorized(position)
    return spatial_hash.query_pairs_vectorized(position, search_radius)
