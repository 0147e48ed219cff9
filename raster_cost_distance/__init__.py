"""
Multi-source wavefront distance transform for rasters.
"""

from .core import Connectivity, Grid, PropagationResult, WavefrontEngine, fill_remaining, propagate

__version__ = "0.1.0"

__all__ = ['Connectivity', 'Grid', 'PropagationResult', 'WavefrontEngine', 'fill_remaining', 'propagate']
