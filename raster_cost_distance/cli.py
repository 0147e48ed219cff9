#!/usr/bin/env python3
"""
Command line entry point.

Loads a seeded raster, runs the wavefront propagation and writes the
distance raster next to the source georeferencing.

    raster-cost-distance --input data/settlements.tif \\
        --output data/results/settlements_cost.tif --maximum 250 --connectivity hybrid
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

import structlog

from .config import Settings
from .core.neighbors import get_strategy, list_connectivities
from .core.wavefront import PropagationResult, WavefrontEngine
from .io.raster import RasterSink, RasterSource, RasterSourceError

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog on top of the standard library logging module."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper(), force=True)

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def run(settings: Settings) -> Optional[PropagationResult]:
    """
    Load, propagate and write one raster.

    Returns:
        PropagationResult, or None if the input raster was not usable
    """
    started = time.perf_counter()

    try:
        dataset = RasterSource.load(settings.input_path)
    except RasterSourceError as e:
        logger.error("Raster not found or unreadable. Exiting...", path=settings.input_path, error=str(e))
        return None

    grid = dataset.to_grid()
    engine = WavefrontEngine(
        get_strategy(settings.connectivity),
        cap=settings.maximum,
        workers=settings.workers,
        chunk_size=settings.chunk_size,
    )
    result = engine.run(grid)

    RasterSink.write(settings.output_path, dataset, grid.cells, settings.output_options)

    logger.info(
        "Run completed",
        input=settings.input_path,
        output=settings.output_path,
        rounds=result.rounds,
        elapsed=round(time.perf_counter() - started, 3),
    )
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="raster-cost-distance",
        description="Compute hop distances from seed cells (value 1) of a raster",
    )
    parser.add_argument("--input", dest="input_path", help="Input raster path")
    parser.add_argument("--output", dest="output_path", help="Output raster path")
    parser.add_argument("--maximum", type=int, help="Maximum distance (0 disables the limit)")
    parser.add_argument("--connectivity", choices=list_connectivities(), help="Neighbor connectivity")
    parser.add_argument("--workers", type=int, help="Worker threads per round")
    parser.add_argument("--chunk-size", dest="chunk_size", type=int, help="Cells scanned by one worker task")
    parser.add_argument(
        "--option",
        dest="output_options",
        action="append",
        metavar="KEY=VALUE",
        help="GDAL creation option for the output, repeatable",
    )
    parser.add_argument("--log-level", dest="log_level", help="Log level")
    parser.add_argument("--log-format", dest="log_format", choices=["console", "json"], help="Log format")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if v is not None}
    settings = Settings(**overrides)

    configure_logging(settings.log_level, settings.log_format)
    run(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
