"""
Raster file adapters.
"""

from .raster import (
    RasterDataset,
    RasterSink,
    RasterSinkError,
    RasterSource,
    RasterSourceError,
    SourceNotFoundError,
    SourceUnreadableError,
)

__all__ = ['RasterDataset', 'RasterSink', 'RasterSinkError', 'RasterSource',
           'RasterSourceError', 'SourceNotFoundError', 'SourceUnreadableError']
