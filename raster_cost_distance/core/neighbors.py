"""
Neighbor expansion strategies.

A strategy knows which neighbors of a claimed cell are candidates for the
next distance value and claims those that are still unclaimed:

- N4: the four axis-aligned neighbors
- N8: N4 plus the four diagonals
- Hybrid: N4 on even candidate values, N8 on odd ones

Pure N8 growth overreaches along the diagonals and pure N4 along the axes.
Alternating the two per round gives a rounder (octagonal) front.
"""

from enum import Enum
from typing import Tuple

import numpy as np

from .grid import UNCLAIMED, Grid

Offsets = Tuple[Tuple[int, int], ...]

N4_OFFSETS: Offsets = ((-1, 0), (1, 0), (0, -1), (0, 1))
DIAGONAL_OFFSETS: Offsets = ((-1, -1), (-1, 1), (1, -1), (1, 1))
N8_OFFSETS: Offsets = N4_OFFSETS + DIAGONAL_OFFSETS


class Connectivity(str, Enum):
    """Neighbor connectivity selectable from settings and the command line."""

    N4 = "n4"
    N8 = "n8"
    HYBRID = "hybrid"


class NeighborStrategy:
    """Base class for neighbor expansion strategies."""

    name = "base"

    def offsets(self, new_value: int) -> Offsets:
        """Neighbor offsets (dx, dy) used when proposing new_value."""
        raise NotImplementedError

    def neighbors(self, grid: Grid, indices: np.ndarray, new_value: int) -> np.ndarray:
        """
        In-bounds neighbor indices of the given cells.

        Args:
            grid: Grid the indices belong to
            indices: Flat indices of expanding cells
            new_value: Candidate value, selects the offsets for Hybrid

        Returns:
            Flat neighbor indices, possibly with duplicates
        """
        indices = np.asarray(indices, dtype=np.int64)
        xs = indices % grid.width
        ys = indices // grid.width

        candidates = []
        for dx, dy in self.offsets(new_value):
            nx = xs + dx
            ny = ys + dy
            inside = (nx >= 0) & (nx < grid.width) & (ny >= 0) & (ny < grid.height)
            candidates.append(nx[inside] + ny[inside] * grid.width)

        if not candidates:
            return np.empty(0, dtype=np.int64)
        return np.concatenate(candidates)

    def expand(self, grid: Grid, cell_index: int, new_value: int) -> int:
        """
        Claim the unclaimed neighbors of a single cell.

        Each neighbor is claimed with its own compare-and-set, so a neighbor
        already taken by another worker, an earlier round or a seed is
        skipped.

        Returns:
            Number of neighbors claimed
        """
        x, y = grid.coords(cell_index)
        changes = 0
        for dx, dy in self.offsets(new_value):
            nx, ny = x + dx, y + dy
            if not grid.in_bounds(nx, ny):
                continue
            i = nx + ny * grid.width
            if grid.cells[i] == UNCLAIMED and grid.compare_and_set(i, UNCLAIMED, new_value):
                changes += 1
        return changes

    def expand_many(self, grid: Grid, indices: np.ndarray, new_value: int) -> int:
        """Claim the unclaimed neighbors of a batch of cells."""
        if len(indices) == 0:
            return 0
        return grid.claim(self.neighbors(grid, indices, new_value), new_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class N4Strategy(NeighborStrategy):
    name = Connectivity.N4.value

    def offsets(self, new_value: int) -> Offsets:
        return N4_OFFSETS


class N8Strategy(NeighborStrategy):
    name = Connectivity.N8.value

    def offsets(self, new_value: int) -> Offsets:
        return N8_OFFSETS


class HybridStrategy(NeighborStrategy):
    """Alternates N4 (even candidate values) and N8 (odd candidate values)."""

    name = Connectivity.HYBRID.value

    def offsets(self, new_value: int) -> Offsets:
        if new_value % 2 == 0:
            return N4_OFFSETS
        return N8_OFFSETS


_STRATEGIES = {
    Connectivity.N4: N4Strategy,
    Connectivity.N8: N8Strategy,
    Connectivity.HYBRID: HybridStrategy,
}


def get_strategy(connectivity) -> NeighborStrategy:
    """
    Get the strategy for a connectivity name.

    Args:
        connectivity: Connectivity member or its value ("n4", "n8", "hybrid")

    Returns:
        Strategy instance

    Raises:
        ValueError: If the connectivity is unknown
    """
    try:
        key = Connectivity(connectivity)
    except ValueError:
        choices = ", ".join(c.value for c in Connectivity)
        raise ValueError(f"Unknown connectivity '{connectivity}'. Available: {choices}") from None
    return _STRATEGIES[key]()


def list_connectivities():
    return [c.value for c in Connectivity]
