"""Tests for elevation tile decoding and HTTP fetching.

Tests: decode_terrarium, decode_geotiff, HttpTileSource
Focus: Synthetic rasters written with rasterio, HTTP mocked with unittest.mock
"""

from unittest.mock import MagicMock

import numpy as np
import pytest
import requests
from rasterio.io import MemoryFile
from rasterio.transform import from_bounds

from cycleslope.constants import TileConfig
from cycleslope.core.coordinate_transform import CoordinateTransform
from cycleslope.core.tile_source import DECODERS, HttpTileSource, TileFetchError, decode_geotiff, decode_terrarium
from cycleslope.model.tile import TileKey

from conftest import NORTH_TILE


def terrarium_png(elevations: np.ndarray) -> bytes:
    """Encode elevations as a Terrarium RGB PNG."""
    value = np.asarray(elevations, dtype=np.float64) + 32768.0
    r = np.floor(value / 256.0)
    g = np.floor(value - r * 256.0)
    b = np.round((value - r * 256.0 - g) * 256.0)
    rgb = np.stack([r, g, b]).astype(np.uint8)
    height, width = elevations.shape
    with MemoryFile() as memfile:
        with memfile.open(driver="PNG", width=width, height=height, count=3, dtype="uint8") as dst:
            dst.write(rgb)
        return memfile.read()


def geotiff(data: np.ndarray, bounds=None, nodata=None, crs="EPSG:3857") -> bytes:
    height, width = data.shape
    profile = {
        "driver": "GTiff",
        "width": width,
        "height": height,
        "count": 1,
        "dtype": "float32",
        "nodata": nodata,
    }
    if bounds is not None:
        profile["crs"] = crs
        profile["transform"] = from_bounds(bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y, width, height)
    with MemoryFile() as memfile:
        with memfile.open(**profile) as dst:
            dst.write(data.astype(np.float32), 1)
        return memfile.read()


# =============================================================================
# DECODERS
# =============================================================================


class TestDecodeTerrarium:
    """Terrarium: elevation = R * 256 + G + B / 256 - 32768."""

    def test_decodes_known_values(self) -> None:
        elevations = np.array([[0.0, 1000.0], [-50.5, 8848.25]])
        tile = decode_terrarium(terrarium_png(elevations), NORTH_TILE)

        assert tile.data == pytest.approx(elevations)
        assert tile.data.dtype == np.float32
        assert (tile.width, tile.height) == (2, 2)

    def test_bounds_from_tile_index(self) -> None:
        tile = decode_terrarium(terrarium_png(np.zeros((4, 4))), NORTH_TILE)
        assert tile.bounds == CoordinateTransform.tile_bounds(zoom=12, x=NORTH_TILE.x, y=NORTH_TILE.y)

    def test_single_band_payload_rejected(self) -> None:
        payload = geotiff(np.zeros((4, 4)))
        with pytest.raises(TileFetchError, match="3 bands"):
            decode_terrarium(payload, NORTH_TILE)

    def test_garbage_payload_rejected(self) -> None:
        with pytest.raises(TileFetchError) as exc_info:
            decode_terrarium(b"<html>Access Denied</html>", NORTH_TILE)
        assert exc_info.value.key == NORTH_TILE


class TestDecodeGeotiff:
    """Single-band GeoTIFF with optional nodata and Web-Mercator bounds."""

    def test_uses_dataset_bounds_in_web_mercator(self) -> None:
        bounds = CoordinateTransform.tile_bounds(zoom=12, x=NORTH_TILE.x, y=NORTH_TILE.y)
        data = np.arange(16, dtype=np.float32).reshape(4, 4)
        tile = decode_geotiff(geotiff(data, bounds=bounds), NORTH_TILE)

        assert tile.bounds.min_x == pytest.approx(bounds.min_x)
        assert tile.bounds.max_y == pytest.approx(bounds.max_y)
        assert tile.value_at(px=3, py=0) == 3.0

    def test_nodata_carried_through(self) -> None:
        data = np.array([[-9999.0, 12.0], [13.0, 14.0]])
        tile = decode_geotiff(geotiff(data, nodata=-9999.0), NORTH_TILE)

        assert tile.nodata == -9999.0
        assert tile.value_at(px=0, py=0) is None
        assert tile.value_at(px=1, py=0) == 12.0

    def test_ungeoreferenced_falls_back_to_tile_bounds(self) -> None:
        tile = decode_geotiff(geotiff(np.zeros((2, 2))), NORTH_TILE)
        assert tile.bounds == CoordinateTransform.tile_bounds(zoom=12, x=NORTH_TILE.x, y=NORTH_TILE.y)

    def test_tile_data_is_read_only(self) -> None:
        tile = decode_geotiff(geotiff(np.zeros((2, 2))), NORTH_TILE)
        with pytest.raises(ValueError):
            tile.data[0, 0] = 1.0


# =============================================================================
# HTTP SOURCE
# =============================================================================


def mock_session(content: bytes = b"", error: Exception = None) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.content = content
    if error is not None:
        response.raise_for_status.side_effect = error
    session.get.return_value = response
    return session


class TestHttpTileSource:
    """HttpTileSource - one GET per load, all failures as TileFetchError."""

    def test_url_for_default_template(self) -> None:
        source = HttpTileSource(session=mock_session())
        assert source.url_for(TileKey(12, 2200, 1343)) == (
            "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/12/2200/1343.png"
        )

    def test_load_decodes_terrarium(self) -> None:
        session = mock_session(content=terrarium_png(np.full((4, 4), 250.0)))
        source = HttpTileSource(session=session, timeout_s=3)

        tile = source.load(NORTH_TILE)

        assert tile.value_at(px=1, py=1) == pytest.approx(250.0)
        session.get.assert_called_once_with(source.url_for(NORTH_TILE), timeout=3)

    def test_load_geotiff_format(self) -> None:
        session = mock_session(content=geotiff(np.full((2, 2), 7.0)))
        source = HttpTileSource(url_template=TileConfig.AWS_GEOTIFF_URL, raster_format="geotiff", session=session)
        assert source.load(NORTH_TILE).value_at(px=0, py=0) == 7.0

    def test_http_error_status(self) -> None:
        session = mock_session(error=requests.HTTPError("404 Client Error: Not Found"))
        source = HttpTileSource(session=session)
        with pytest.raises(TileFetchError, match="404"):
            source.load(NORTH_TILE)
        assert session.get.call_count == 1

    def test_transport_error(self) -> None:
        session = mock_session()
        session.get.side_effect = requests.ConnectionError("connection reset")
        source = HttpTileSource(session=session)
        with pytest.raises(TileFetchError, match="connection reset"):
            source.load(NORTH_TILE)

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ValueError, match="raster_format"):
            HttpTileSource(raster_format="lerc", session=mock_session())

    def test_every_configured_format_has_a_decoder(self) -> None:
        assert set(DECODERS) == set(TileConfig.FORMATS)
        assert TileConfig.DEFAULT_FORMAT in DECODERS
        for raster_format in TileConfig.FORMATS:
            assert HttpTileSource(raster_format=raster_format, session=mock_session()).raster_format == raster_format
