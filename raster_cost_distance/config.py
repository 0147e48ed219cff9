"""Configuration management."""

import os
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

from .core.neighbors import Connectivity


class Settings(BaseSettings):
    """Run settings pulled from RCD_* environment variables or a .env file."""

    # Paths
    input_path: str = Field(default="data/settlements_clipped.tif", description="Input raster with seeds marked as 1")
    output_path: str = Field(
        default="data/results/settlements_clipped_cost.tif", description="Output raster path"
    )

    # Propagation
    maximum: int = Field(
        default=250, ge=0, description="Maximum distance, farther cells get this value (0 disables the limit)"
    )
    connectivity: Connectivity = Field(default=Connectivity.N8, description="Neighbor connectivity: n4, n8 or hybrid")
    workers: int = Field(default=os.cpu_count() or 1, gt=0, description="Worker threads per round")
    chunk_size: int = Field(default=65536, gt=0, description="Cells scanned by one worker task")

    # Output
    output_options: List[str] = Field(
        default=["COMPRESS=DEFLATE", "TFW=YES"], description="GDAL creation options (KEY=VALUE)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    class Config:
        env_prefix = "RCD_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
