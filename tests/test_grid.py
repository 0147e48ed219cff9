"""
Tests for the grid model.
"""

import threading

import numpy as np
import pytest

from raster_cost_distance.core.grid import SEED, STRIPE_ROWS, UNCLAIMED, Grid, GridError


class TestGridConstruction:
    """Construction and validation."""

    def test_empty_grid_is_unclaimed(self):
        grid = Grid.empty(4, 3)

        assert len(grid) == 12
        assert grid.cells.dtype == np.int32
        assert np.all(grid.cells == UNCLAIMED)

    def test_buffer_is_flattened(self):
        grid = Grid(3, 2, [[0, 1, 0], [0, 0, 0]])

        assert grid.cells.shape == (6,)
        assert grid.get(1) == SEED

    def test_contiguous_int32_buffer_is_shared(self):
        buffer = np.zeros(6, dtype=np.int32)
        grid = Grid(3, 2, buffer)

        grid.set(0, 1)
        assert buffer[0] == 1

    def test_other_buffers_are_copied(self):
        buffer = np.zeros(6, dtype=np.int64)
        grid = Grid(3, 2, buffer)

        grid.set(0, 1)
        assert buffer[0] == 0

    def test_wrong_buffer_size_rejected(self):
        with pytest.raises(GridError, match="expected 6"):
            Grid(3, 2, np.zeros(5, dtype=np.int32))

    @pytest.mark.parametrize("width,height", [(0, 3), (3, 0), (-1, 2)])
    def test_non_positive_dimensions_rejected(self, width, height):
        with pytest.raises(GridError):
            Grid(width, height)

    def test_from_array_round_trip(self):
        array = np.arange(12, dtype=np.int32).reshape(3, 4)
        grid = Grid.from_array(array)

        assert grid.width == 4
        assert grid.height == 3
        np.testing.assert_array_equal(grid.to_array(), array)

        # from_array copies its input
        grid.set(0, 99)
        assert array[0, 0] == 0

    def test_from_array_requires_2d(self):
        with pytest.raises(GridError):
            Grid.from_array(np.zeros(5))


class TestGridAddressing:
    """Index and coordinate conversion."""

    @pytest.fixture
    def grid(self):
        return Grid.empty(5, 4)

    def test_index_is_row_major(self, grid):
        assert grid.index(0, 0) == 0
        assert grid.index(4, 0) == 4
        assert grid.index(0, 1) == 5
        assert grid.index(3, 2) == 13

    def test_coords_inverts_index(self, grid):
        for i in range(len(grid)):
            x, y = grid.coords(i)
            assert grid.index(x, y) == i

    def test_out_of_bounds(self, grid):
        assert not grid.in_bounds(-1, 0)
        assert not grid.in_bounds(5, 0)
        assert not grid.in_bounds(0, 4)
        assert grid.in_bounds(4, 3)

        with pytest.raises(IndexError):
            grid.index(5, 0)
        with pytest.raises(IndexError):
            grid.coords(20)

    def test_mark_seeds(self, grid):
        grid.mark_seeds([grid.index(1, 1), grid.index(3, 2)])

        assert grid.count(SEED) == 2
        assert grid.rows()[1][1] == SEED
        assert grid.rows()[2][3] == SEED


class TestGridClaims:
    """Compare-and-set and batched claims."""

    def test_compare_and_set(self):
        grid = Grid.empty(2, 2)

        assert grid.compare_and_set(0, UNCLAIMED, 5)
        assert not grid.compare_and_set(0, UNCLAIMED, 7)
        assert grid.get(0) == 5

    def test_claim_skips_claimed_cells(self):
        grid = Grid(4, 1, [1, 0, 3, 0])

        assert grid.claim(np.array([0, 1, 2, 3]), 9) == 2
        assert grid.cells.tolist() == [1, 9, 3, 9]

    def test_claim_counts_duplicates_once(self):
        grid = Grid.empty(3, 3)

        assert grid.claim(np.array([4, 4, 4, 1, 1]), 2) == 2
        assert grid.count(2) == 2

    def test_claim_empty(self):
        grid = Grid.empty(3, 3)
        assert grid.claim(np.array([], dtype=np.int64), 2) == 0

    def test_claim_across_lock_stripes(self):
        height = STRIPE_ROWS * 3 + 5
        grid = Grid.empty(3, height)
        indices = np.arange(0, len(grid), 7)

        assert grid.claim(indices, 4) == indices.size
        assert np.all(grid.cells[indices] == 4)

    def test_concurrent_claims_win_once(self):
        grid = Grid.empty(50, STRIPE_ROWS * 2)
        rng = np.random.default_rng(7)
        batches = [rng.integers(0, len(grid), size=2000) for _ in range(8)]
        results = [0] * len(batches)

        def worker(n):
            results[n] = grid.claim(batches[n], n + 1)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(len(batches))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        touched = np.unique(np.concatenate(batches))
        assert sum(results) == touched.size
        assert np.count_nonzero(grid.cells) == touched.size
