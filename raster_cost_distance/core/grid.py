"""
Dense raster grid model.

The grid is a flat, row-major int32 buffer with width/height addressing.
Value 0 marks an unclaimed cell; positive values are claimed distances.

All writes that race with other workers go through compare_and_set() or
claim(), which are atomic with respect to each other. Locks are striped by
row band so that workers expanding different parts of the raster rarely
contend.
"""

import threading
from typing import Iterable, List, Optional, Tuple

import numpy as np

UNCLAIMED = 0
SEED = 1

# Rows per lock stripe
STRIPE_ROWS = 64


class GridError(ValueError):
    """Raised when a grid is constructed from inconsistent data."""


class Grid:
    """Row-major integer raster with bounds-checked addressing."""

    def __init__(self, width: int, height: int, cells: Optional[np.ndarray] = None):
        """
        Create a grid.

        Args:
            width: Number of columns
            height: Number of rows
            cells: Flat buffer of width * height values. The caller is
                responsible for marking seed cells with 1. When omitted the
                grid starts fully unclaimed. A contiguous int32 buffer is
                used as-is, so the engine updates the caller's array in
                place; any other buffer is converted into a new int32 copy.
                Use from_array() to always work on a copy.
        """
        if width <= 0 or height <= 0:
            raise GridError(f"Grid dimensions must be positive, got {width}x{height}")

        if cells is None:
            cells = np.zeros(width * height, dtype=np.int32)
        else:
            cells = np.ascontiguousarray(cells, dtype=np.int32).reshape(-1)

        if cells.size != width * height:
            raise GridError(
                f"Buffer has {cells.size} cells, expected {width * height} for {width}x{height}"
            )

        self.width = width
        self.height = height
        self.cells = cells

        n_stripes = (height + STRIPE_ROWS - 1) // STRIPE_ROWS
        self._locks = [threading.Lock() for _ in range(n_stripes)]

    @classmethod
    def empty(cls, width: int, height: int) -> "Grid":
        """Create an all-unclaimed grid."""
        return cls(width, height)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Grid":
        """Create a grid from a 2D (rows, cols) array."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise GridError(f"Expected a 2D array, got {array.ndim} dimensions")
        height, width = array.shape
        return cls(width, height, array.copy())

    def to_array(self) -> np.ndarray:
        """Return a 2D (rows, cols) view of the cell buffer."""
        return self.cells.reshape(self.height, self.width)

    def __len__(self) -> int:
        return self.cells.size

    def __repr__(self) -> str:
        return f"Grid(width={self.width}, height={self.height})"

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        """Convert (x, y) coordinates to a flat index."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} grid")
        return x + y * self.width

    def coords(self, i: int) -> Tuple[int, int]:
        """Convert a flat index to (x, y) coordinates."""
        if not 0 <= i < self.cells.size:
            raise IndexError(f"Index {i} outside grid of {self.cells.size} cells")
        return i % self.width, i // self.width

    def get(self, i: int) -> int:
        return int(self.cells[i])

    def set(self, i: int, value: int) -> None:
        """Unsynchronized write. Only safe while no workers are running."""
        self.cells[i] = value

    def mark_seeds(self, indices: Iterable[int]) -> None:
        """Mark the given cells as seeds (distance-zero sources)."""
        self.cells[np.fromiter(indices, dtype=np.int64)] = SEED

    def _stripe(self, i: int) -> int:
        return (i // self.width) // STRIPE_ROWS

    def compare_and_set(self, i: int, expected: int, value: int) -> bool:
        """
        Atomically replace the value at index i if it still equals expected.

        Returns:
            True if the swap happened
        """
        with self._locks[self._stripe(i)]:
            if self.cells[i] != expected:
                return False
            self.cells[i] = value
            return True

    def claim(self, indices: np.ndarray, value: int) -> int:
        """
        Atomically claim every unclaimed slot among indices.

        Each distinct slot that is still 0 at the moment of the attempt
        receives value. Duplicate indices count once.

        Args:
            indices: Flat cell indices, may contain duplicates
            value: Value to write into unclaimed slots

        Returns:
            Number of slots claimed by this call
        """
        indices = np.unique(np.asarray(indices, dtype=np.int64))
        if indices.size == 0:
            return 0

        stripes = (indices // self.width) // STRIPE_ROWS
        # indices are sorted, so stripes are too
        bounds = np.flatnonzero(np.diff(stripes)) + 1
        claimed = 0
        for group in np.split(indices, bounds):
            with self._locks[self._stripe(int(group[0]))]:
                free = group[self.cells[group] == UNCLAIMED]
                self.cells[free] = value
            claimed += free.size
        return claimed

    def count(self, value: int) -> int:
        """Number of cells currently holding value."""
        return int(np.count_nonzero(self.cells == value))

    def rows(self) -> List[List[int]]:
        """Cell values as nested lists, one per row."""
        return self.to_array().tolist()
