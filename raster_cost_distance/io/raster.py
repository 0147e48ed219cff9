"""
GeoTIFF (and other GDAL format) input/output built on rasterio.

RasterSource reads band 1 of a raster into a flat int32 buffer and keeps the
metadata needed to write a result in the same format and georeferencing.
RasterSink writes a finished grid next to that metadata.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import numpy as np
import rasterio
import structlog
from rasterio.crs import CRS
from rasterio.errors import RasterioError
from rasterio.transform import Affine

from ..core.grid import Grid

logger = structlog.get_logger()

PathLike = Union[str, Path]

DEFAULT_OUTPUT_OPTIONS = ("COMPRESS=DEFLATE", "TFW=YES")

WORLD_FILE_SUFFIX = ".tfw"

INT32_INFO = np.iinfo(np.int32)

# Stands in for NaN and out-of-range float cells; never a frontier value
NODATA_CELL = int(INT32_INFO.min)


def to_int32_cells(band: np.ndarray) -> np.ndarray:
    """
    Convert a raster band to int32.

    Float cells that are NaN, infinite or outside the int32 range become
    NODATA_CELL; other float cells are truncated toward zero.
    """
    if np.issubdtype(band.dtype, np.floating):
        valid = np.isfinite(band) & (band >= INT32_INFO.min) & (band <= INT32_INFO.max)
        band = np.where(valid, band, NODATA_CELL)
    return band.astype(np.int32, copy=False)


def int32_nodata(nodata: Optional[float]) -> Optional[int]:
    """Nodata value as it appears in int32 cells."""
    if nodata is None:
        return None
    if not np.isfinite(nodata) or not INT32_INFO.min <= nodata <= INT32_INFO.max:
        return NODATA_CELL
    return int(nodata)


class RasterSourceError(Exception):
    """No usable input raster."""


class SourceNotFoundError(RasterSourceError):
    """The input raster does not exist."""


class SourceUnreadableError(RasterSourceError):
    """The input raster exists but could not be opened or read."""


class RasterSinkError(Exception):
    """The output raster could not be written."""


@dataclass
class RasterDataset:
    """A single-band raster held in memory together with its georeferencing."""

    path: Path
    width: int
    height: int
    cells: np.ndarray
    driver: str
    crs: Optional[CRS] = None
    transform: Affine = Affine.identity()
    has_nodata: bool = False
    nodata: Optional[float] = None

    @property
    def projection(self) -> str:
        """Projection as WKT, empty when the source has none."""
        return self.crs.to_wkt() if self.crs is not None else ""

    def to_grid(self) -> Grid:
        return Grid(self.width, self.height, self.cells)


def parse_options(options: Iterable[str]) -> Dict[str, str]:
    """
    Turn GDAL style "KEY=VALUE" creation options into rasterio keywords.

    Raises:
        ValueError: If an option has no "="
    """
    parsed = {}
    for option in options:
        key, sep, value = option.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid creation option '{option}', expected KEY=VALUE")
        parsed[key.strip().lower()] = value.strip()
    return parsed


class RasterSource:
    """Loads rasters from disk."""

    @staticmethod
    def load(path: PathLike) -> RasterDataset:
        """
        Read band 1 of a raster as int32.

        Float bands are truncated to integers. NaN, infinite and out of
        range cells become NODATA_CELL, which blocks propagation.

        Args:
            path: Raster file path

        Returns:
            RasterDataset with cells and georeferencing

        Raises:
            SourceNotFoundError: If the file does not exist
            SourceUnreadableError: If the file cannot be opened or read
        """
        path = Path(path)
        if not path.is_file():
            raise SourceNotFoundError(f"Raster not found: {path}")

        try:
            with rasterio.open(path) as src:
                cells = to_int32_cells(src.read(1)).reshape(-1)
                dataset = RasterDataset(
                    path=path,
                    width=src.width,
                    height=src.height,
                    cells=np.ascontiguousarray(cells),
                    driver=src.driver,
                    crs=src.crs,
                    transform=src.transform,
                    has_nodata=src.nodata is not None,
                    nodata=src.nodata,
                )
        except (RasterioError, OSError, ValueError) as e:
            raise SourceUnreadableError(f"Raster unreadable: {path}: {e}") from e

        logger.info(
            "Raster loaded",
            path=str(path),
            width=dataset.width,
            height=dataset.height,
            driver=dataset.driver,
            has_nodata=dataset.has_nodata,
        )
        return dataset


class RasterSink:
    """Writes finished grids in the format and projection of their source."""

    @staticmethod
    def write(
        path: PathLike,
        dataset: RasterDataset,
        cells: Optional[np.ndarray] = None,
        options: Iterable[str] = DEFAULT_OUTPUT_OPTIONS,
    ) -> Path:
        """
        Write a single-band int32 raster.

        Any existing file at path is replaced. A world file next to the
        source is copied next to the output under the matching name.

        Args:
            path: Output path
            dataset: Source dataset providing size and georeferencing
            cells: Flat cell buffer, defaults to dataset.cells
            options: GDAL creation options as "KEY=VALUE" strings

        Returns:
            Output path

        Raises:
            RasterSinkError: If the raster cannot be written
        """
        path = Path(path)
        if cells is None:
            cells = dataset.cells
        cells = np.asarray(cells, dtype=np.int32).reshape(dataset.height, dataset.width)

        profile = {
            "driver": dataset.driver,
            "width": dataset.width,
            "height": dataset.height,
            "count": 1,
            "dtype": "int32",
            "crs": dataset.crs,
            "transform": dataset.transform,
        }
        if dataset.has_nodata:
            nodata = int32_nodata(dataset.nodata)
            if nodata != dataset.nodata:
                logger.warning(
                    "Nodata value not representable as int32, remapped",
                    nodata=dataset.nodata,
                    written=nodata,
                )
            profile["nodata"] = nodata
        profile.update(parse_options(options))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists():
                path.unlink()
            with rasterio.open(path, "w", **profile) as dst:
                dst.write(cells, 1)
        except (RasterioError, OSError, ValueError) as e:
            raise RasterSinkError(f"Could not write raster {path}: {e}") from e

        world_file = dataset.path.with_suffix(WORLD_FILE_SUFFIX)
        if world_file.is_file():
            shutil.copyfile(world_file, path.with_suffix(WORLD_FILE_SUFFIX))

        logger.info("Raster saved", path=str(path), width=dataset.width, height=dataset.height)
        return path
