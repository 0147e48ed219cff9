"""
Core distance propagation functionality.
"""

from .grid import Grid, GridError, SEED, UNCLAIMED
from .neighbors import Connectivity, NeighborStrategy, N4Strategy, N8Strategy, HybridStrategy, get_strategy
from .wavefront import WavefrontEngine, PropagationResult, fill_remaining, propagate

__all__ = ['Grid', 'GridError', 'SEED', 'UNCLAIMED',
           'Connectivity', 'NeighborStrategy', 'N4Strategy', 'N8Strategy', 'HybridStrategy', 'get_strategy',
           'WavefrontEngine', 'PropagationResult', 'fill_remaining', 'propagate']
