"""
Tests for settings and the command line entry point.
"""

import numpy as np
import pytest
import rasterio
from pydantic import ValidationError
from rasterio.transform import from_origin

from raster_cost_distance.cli import main, run
from raster_cost_distance.config import Settings
from raster_cost_distance.core.neighbors import Connectivity


@pytest.fixture
def line_raster(tmp_path):
    path = tmp_path / "line.tif"
    array = np.zeros((1, 5), dtype=np.int32)
    array[0, 0] = 1
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        width=5,
        height=1,
        count=1,
        dtype="int32",
        crs="EPSG:3857",
        transform=from_origin(0, 0, 10, 10),
    ) as dst:
        dst.write(array, 1)
    return path


class TestSettings:
    """Settings defaults, environment and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.maximum == 250
        assert settings.connectivity == Connectivity.N8
        assert settings.output_options == ["COMPRESS=DEFLATE", "TFW=YES"]

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("RCD_MAXIMUM", "10")
        monkeypatch.setenv("RCD_CONNECTIVITY", "hybrid")

        settings = Settings()
        assert settings.maximum == 10
        assert settings.connectivity == Connectivity.HYBRID

    @pytest.mark.parametrize("field,value", [("maximum", -1), ("workers", 0), ("connectivity", "n6")])
    def test_invalid(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})


class TestRun:
    """End-to-end runs."""

    def test_run_writes_capped_distances(self, tmp_path, line_raster):
        out = tmp_path / "results" / "line_cost.tif"
        settings = Settings(input_path=str(line_raster), output_path=str(out), maximum=3, connectivity="n4")

        result = run(settings)

        assert result.rounds == 2
        with rasterio.open(out) as src:
            assert src.read(1).tolist() == [[1, 2, 3, 3, 3]]

    @pytest.mark.parametrize("nodata", [np.nan, float(np.finfo(np.float32).min)])
    def test_run_float_source_with_unrepresentable_nodata(self, tmp_path, nodata):
        source = tmp_path / "float.tif"
        array = np.array([[1, 0, nodata], [0, 0, 0]], dtype=np.float32)
        with rasterio.open(
            source,
            "w",
            driver="GTiff",
            width=3,
            height=2,
            count=1,
            dtype="float32",
            crs="EPSG:3857",
            transform=from_origin(0, 0, 10, 10),
            nodata=nodata,
        ) as dst:
            dst.write(array, 1)
        out = tmp_path / "float_cost.tif"

        result = run(Settings(input_path=str(source), output_path=str(out), maximum=0, connectivity="n8"))

        assert result is not None
        with rasterio.open(out) as src:
            nodata_cell = int(np.iinfo(np.int32).min)
            assert src.nodata == nodata_cell
            assert src.read(1).tolist() == [[1, 2, nodata_cell], [2, 2, 3]]

    def test_run_missing_input(self, tmp_path):
        out = tmp_path / "out.tif"
        settings = Settings(input_path=str(tmp_path / "missing.tif"), output_path=str(out))

        assert run(settings) is None
        assert not out.exists()


class TestMain:
    """Command line parsing."""

    def test_main(self, tmp_path, line_raster):
        out = tmp_path / "cost.tif"

        status = main(
            [
                "--input", str(line_raster),
                "--output", str(out),
                "--maximum", "0",
                "--connectivity", "n8",
                "--workers", "2",
                "--option", "COMPRESS=LZW",
            ]
        )

        assert status == 0
        with rasterio.open(out) as src:
            assert src.read(1).tolist() == [[1, 2, 3, 4, 5]]
            assert src.compression.value == "LZW"
        assert not out.with_suffix(".tfw").exists()

    def test_main_missing_input_exits_cleanly(self, tmp_path):
        out = tmp_path / "cost.tif"

        assert main(["--input", str(tmp_path / "nope.tif"), "--output", str(out)]) == 0
        assert not out.exists()

    def test_unknown_connectivity(self):
        with pytest.raises(SystemExit):
            main(["--connectivity", "n6"])
