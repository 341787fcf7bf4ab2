"""Elevation tile sources: fetch a raster by (zoom, x, y) and decode it.

Provides:
- TileSource protocol used by TileCache
- HttpTileSource for XYZ tile servers (AWS Terrain Tiles by default)
- Decoders for Terrarium PNG and single-band GeoTIFF payloads

A source makes exactly one attempt per call. Every failure is raised as
TileFetchError; deciding what to do about it is the cache's job.
"""

import logging
import warnings
from typing import Optional, Protocol

import numpy as np
import requests
from rasterio.errors import NotGeoreferencedWarning, RasterioError
from rasterio.io import MemoryFile

from cycleslope.constants import TileConfig
from cycleslope.core.coordinate_transform import CoordinateTransform
from cycleslope.model.tile import ElevationTile, MercatorBounds, TileKey

logger = logging.getLogger(__name__)

WEB_MERCATOR_EPSG = 3857


class TileFetchError(Exception):
    """Tile could not be fetched (transport error, non-success status) or decoded."""

    def __init__(self, key: TileKey, reason: str):
        super().__init__(f"Tile {key}: {reason}")
        self.key = key
        self.reason = reason


class TileSource(Protocol):
    """Anything that can produce a decoded tile for a key."""

    def load(self, key: TileKey) -> ElevationTile:
        """Fetch and decode one tile, raising TileFetchError on failure."""
        ...


def decode_terrarium(payload: bytes, key: TileKey) -> ElevationTile:
    """Decode a Terrarium-encoded RGB image into elevations.

    Terrarium encodes elevation as R * 256 + G + B / 256 - 32768. The image
    carries no georeference, so the footprint comes from the tile index.

    Args:
        payload: PNG (or WebP) bytes with at least 3 bands
        key: Tile the payload was fetched for

    Returns:
        ElevationTile with float32 elevations in meters.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with MemoryFile(payload) as memfile, memfile.open() as dataset:
                if dataset.count < 3:
                    raise TileFetchError(key, f"terrarium tile needs 3 bands, got {dataset.count}")
                rgb = dataset.read(indexes=[1, 2, 3]).astype(np.float64)
    except RasterioError as e:
        raise TileFetchError(key, f"undecodable terrarium payload: {e}") from e

    elevation = (
        rgb[0] * TileConfig.TERRARIUM_R_SCALE
        + rgb[1] * TileConfig.TERRARIUM_G_SCALE
        + rgb[2] * TileConfig.TERRARIUM_B_SCALE
        + TileConfig.TERRARIUM_OFFSET
    )
    return ElevationTile(
        key=key,
        data=elevation.astype(np.float32),
        bounds=CoordinateTransform.tile_bounds(zoom=key.zoom, x=key.x, y=key.y),
    )


def decode_geotiff(payload: bytes, key: TileKey) -> ElevationTile:
    """Decode a single-band elevation GeoTIFF.

    Uses the dataset's own bounds when it is in Web-Mercator, otherwise falls
    back to the slippy-tile footprint for the key.

    Args:
        payload: GeoTIFF bytes
        key: Tile the payload was fetched for

    Returns:
        ElevationTile with the raster's nodata value carried through.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with MemoryFile(payload) as memfile, memfile.open() as dataset:
                data = dataset.read(1)
                nodata: Optional[float] = dataset.nodata
                if dataset.crs is not None and dataset.crs.to_epsg() == WEB_MERCATOR_EPSG:
                    b = dataset.bounds
                    bounds = MercatorBounds(min_x=b.left, min_y=b.bottom, max_x=b.right, max_y=b.top)
                else:
                    bounds = CoordinateTransform.tile_bounds(zoom=key.zoom, x=key.x, y=key.y)
    except RasterioError as e:
        raise TileFetchError(key, f"undecodable geotiff payload: {e}") from e

    return ElevationTile(key=key, data=data, bounds=bounds, nodata=nodata)


DECODERS = {
    "terrarium": decode_terrarium,
    "geotiff": decode_geotiff,
}


class HttpTileSource:
    """Fetches elevation tiles from an XYZ URL template.

    Example:
        source = HttpTileSource()
        tile = source.load(TileKey(zoom=12, x=2200, y=1343))
    """

    def __init__(
        self,
        url_template: str = TileConfig.DEFAULT_URL,
        raster_format: str = TileConfig.DEFAULT_FORMAT,
        timeout_s: float = TileConfig.REQUEST_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        """Initialize tile source.

        Args:
            url_template: URL with {z}, {x} and {y} placeholders
            raster_format: "terrarium" or "geotiff"
            timeout_s: Request timeout in seconds
            session: requests session to reuse connections (created if not provided)
        """
        if raster_format not in DECODERS:
            raise ValueError(f"Unknown raster_format '{raster_format}'. Must be one of: {sorted(DECODERS)}")
        self.url_template = url_template
        self.raster_format = raster_format
        self.timeout_s = timeout_s
        self._session = session if session is not None else requests.Session()
        self._decode = DECODERS[raster_format]

    def url_for(self, key: TileKey) -> str:
        return self.url_template.format(**key.url_params())

    def load(self, key: TileKey) -> ElevationTile:
        """Fetch and decode one tile with a single HTTP attempt.

        Raises:
            TileFetchError: On transport errors, non-2xx responses or bad payloads.
        """
        url = self.url_for(key)
        logger.debug(f"Fetching elevation tile {key} from {url}")
        try:
            response = self._session.get(url, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TileFetchError(key, str(e)) from e

        return self._decode(response.content, key)
