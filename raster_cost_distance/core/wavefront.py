"""
Wavefront propagation engine.

Computes, for every cell, the number of hops from the nearest seed cell by
expanding a front one ring per round:

    round r:  every cell equal to the frontier value r claims its unclaimed
              neighbors with r + 1

Rounds are synchronous. Each round scans the whole grid in parallel chunks
and all chunks are joined before the next round starts, so every claim made
in a round carries the same value. Claims are compare-and-set against the
unclaimed sentinel, which makes the result independent of scheduling.

With a cap, values saturate at the cap and a final pass assigns the cap to
every cell the front never reached.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import structlog

from .grid import UNCLAIMED, Grid
from .neighbors import Connectivity, NeighborStrategy, get_strategy

logger = structlog.get_logger()

DEFAULT_CHUNK_SIZE = 65536


@dataclass
class PropagationResult:
    """Diagnostics of a propagation run."""

    rounds: int = 0
    changes: int = 0  # cells claimed by the wavefront loop
    filled: int = 0  # cells assigned by the fill-remaining pass
    round_changes: List[int] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total_changes(self) -> int:
        return self.changes + self.filled


def fill_remaining(grid: Grid, cap: int) -> int:
    """
    Assign the cap to every cell that is still unclaimed.

    Each cell is set only if it is still 0 at the moment of the attempt;
    claimed cells are never touched.

    Args:
        grid: Grid after the wavefront loop
        cap: Distance cap, must be positive

    Returns:
        Number of cells filled
    """
    if cap <= 0:
        raise ValueError(f"fill_remaining needs a positive cap, got {cap}")
    remaining = np.flatnonzero(grid.cells == UNCLAIMED)
    return grid.claim(remaining, cap)


class WavefrontEngine:
    """Round-synchronous, multi-threaded multi-source distance transform."""

    def __init__(
        self,
        strategy: Optional[NeighborStrategy] = None,
        cap: int = 0,
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize the engine.

        Args:
            strategy: Neighbor expansion strategy (N8 by default)
            cap: Maximum distance; 0 disables the cap
            workers: Worker threads per round (CPU count by default)
            chunk_size: Cells scanned by one worker task
        """
        if cap < 0:
            raise ValueError(f"cap must be >= 0, got {cap}")
        if workers is None:
            workers = os.cpu_count() or 1
        if workers <= 0:
            raise ValueError(f"workers must be positive, got {workers}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.strategy = strategy if strategy is not None else get_strategy(Connectivity.N8)
        self.cap = cap
        self.workers = workers
        self.chunk_size = chunk_size

    def frontier_value(self, round_number: int) -> int:
        if self.cap > 0:
            return min(round_number, self.cap)
        return round_number

    def candidate_value(self, round_number: int) -> int:
        if self.cap > 0:
            return min(round_number + 1, self.cap)
        return round_number + 1

    def _expand_chunk(self, grid: Grid, start: int, stop: int, frontier: int, new_value: int) -> int:
        frontier_cells = np.flatnonzero(grid.cells[start:stop] == frontier) + start
        return self.strategy.expand_many(grid, frontier_cells, new_value)

    def expand_round(self, grid: Grid, round_number: int, executor: ThreadPoolExecutor) -> int:
        """
        Run one wavefront round and wait for all of its workers.

        Returns:
            Number of cells claimed in this round
        """
        frontier = self.frontier_value(round_number)
        new_value = self.candidate_value(round_number)

        futures = [
            executor.submit(self._expand_chunk, grid, start, min(start + self.chunk_size, len(grid)), frontier, new_value)
            for start in range(0, len(grid), self.chunk_size)
        ]
        # Barrier: result() blocks until each chunk of this round is done
        return sum(f.result() for f in futures)

    def run(self, grid: Grid) -> PropagationResult:
        """
        Propagate distances from the seed cells of grid, in place.

        Args:
            grid: Grid with seeds marked as 1 and everything else 0

        Returns:
            PropagationResult with round and change counts
        """
        result = PropagationResult()
        started = time.perf_counter()

        logger.info(
            "Starting wavefront propagation",
            width=grid.width,
            height=grid.height,
            seeds=grid.count(1),
            strategy=self.strategy.name,
            cap=self.cap,
            workers=self.workers,
        )

        round_number = 1
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            while True:
                changes = self.expand_round(grid, round_number, executor)
                result.rounds += 1
                result.changes += changes
                result.round_changes.append(changes)

                logger.info(
                    "Round completed",
                    round=round_number,
                    value=self.candidate_value(round_number),
                    changes=changes,
                )

                round_number += 1
                if changes == 0 or (self.cap > 0 and round_number >= self.cap):
                    break

        if self.cap > 0:
            result.filled = fill_remaining(grid, self.cap)
            logger.info("Remaining cells filled", value=self.cap, changes=result.filled)

        result.elapsed = time.perf_counter() - started
        logger.info(
            "Wavefront propagation completed",
            rounds=result.rounds,
            changes=result.changes,
            filled=result.filled,
            elapsed=round(result.elapsed, 3),
        )
        return result


def propagate(
    grid: Grid,
    cap: int = 0,
    connectivity=Connectivity.N8,
    workers: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> PropagationResult:
    """
    Run a wavefront propagation on grid in place.

    Args:
        grid: Seeded grid
        cap: Maximum distance; 0 disables the cap
        connectivity: "n4", "n8" or "hybrid"
        workers: Worker threads per round
        chunk_size: Cells scanned by one worker task

    Returns:
        PropagationResult diagnostics
    """
    engine = WavefrontEngine(get_strategy(connectivity), cap=cap, workers=workers, chunk_size=chunk_size)
    return engine.run(grid)
