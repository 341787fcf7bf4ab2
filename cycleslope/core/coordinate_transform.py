"""Geodetic, Web-Mercator and tile-pixel coordinate math.

Provides:
- Spherical Web-Mercator forward projection (R = 6,378,137 m)
- Slippy-tile indexing and tile footprints in Mercator meters
- Pixel addressing inside a tile raster

Scalar functions are plain math. project_many() projects whole sample batches
through pyproj, which implements the same EPSG:3857 projection.
"""

from functools import lru_cache
from math import cos, floor, inf, log, pi, radians, tan
from typing import Iterator, Sequence

import numpy as np
from pyproj import Transformer

from cycleslope.constants import GeoConfig
from cycleslope.model.geo_point import BoundingBox
from cycleslope.model.tile import MercatorBounds, TileKey

MERCATOR_RADIUS_M = GeoConfig.MERCATOR_RADIUS_M

# Half the side of the square Mercator world (~20,037,508m)
ORIGIN_SHIFT_M = pi * MERCATOR_RADIUS_M


@lru_cache(maxsize=1)
def _wgs84_to_mercator() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


class CoordinateTransform:
    """Static methods converting between WGS84, Web-Mercator and tile pixels.

    Example:
        x, y = CoordinateTransform.project_to_mercator(lat=52.52, lon=13.405)
        tx, ty = CoordinateTransform.tile_index_for(lat=52.52, lon=13.405, zoom=12)
    """

    @staticmethod
    def project_to_mercator(lat: float, lon: float) -> tuple[float, float]:
        """Project a WGS84 coordinate to Web-Mercator meters.

        Args:
            lat: Latitude in decimal degrees, within (-90, 90)
            lon: Longitude in decimal degrees, within (-180, 180)

        Returns:
            (x, y) in meters. y is +/-inf at the poles.
        """
        x = MERCATOR_RADIUS_M * radians(lon)
        if lat >= 90.0:
            return x, inf
        if lat <= -90.0:
            return x, -inf
        y = MERCATOR_RADIUS_M * log(tan(pi / 4 + radians(lat) / 2))
        return x, y

    @staticmethod
    def project_many(lats: Sequence[float], lons: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        """Project arrays of coordinates to Web-Mercator meters.

        Returns:
            Tuple of (xs, ys) arrays.
        """
        xs, ys = _wgs84_to_mercator().transform(np.asarray(lons, dtype=float), np.asarray(lats, dtype=float))
        return np.asarray(xs), np.asarray(ys)

    @staticmethod
    def tile_index_for(lat: float, lon: float, zoom: int) -> tuple[int, int]:
        """Slippy-tile (x, y) containing a coordinate at a zoom level.

        Latitudes are clamped to the Mercator limit and indices to the tile grid,
        so points on the antimeridian or near the poles still get a valid tile.
        """
        n = 2**zoom
        lat = max(-GeoConfig.MERCATOR_MAX_LAT, min(GeoConfig.MERCATOR_MAX_LAT, lat))
        lat_rad = radians(lat)
        x = floor((lon + 180.0) / 360.0 * n)
        y = floor((1.0 - log(tan(lat_rad) + 1.0 / cos(lat_rad)) / pi) / 2.0 * n)
        return min(max(x, 0), n - 1), min(max(y, 0), n - 1)

    @staticmethod
    def tile_bounds(zoom: int, x: int, y: int) -> MercatorBounds:
        """Footprint of a slippy tile in Web-Mercator meters."""
        tile_size_m = 2 * ORIGIN_SHIFT_M / 2**zoom
        min_x = -ORIGIN_SHIFT_M + x * tile_size_m
        max_y = ORIGIN_SHIFT_M - y * tile_size_m
        return MercatorBounds(min_x=min_x, min_y=max_y - tile_size_m, max_x=min_x + tile_size_m, max_y=max_y)

    @staticmethod
    def pixel_for(
        projected: tuple[float, float],
        bounds: MercatorBounds,
        width: int,
        height: int,
    ) -> tuple[int, int]:
        """Pixel (px, py) of a projected point inside a raster footprint.

        Row 0 is the northern edge. The result is not clamped: callers must
        check it against [0, width) x [0, height).
        """
        x, y = projected
        px = floor((x - bounds.min_x) / bounds.width_m * width)
        py = floor((bounds.max_y - y) / bounds.height_m * height)
        return px, py

    @staticmethod
    def tiles_covering(bbox: BoundingBox, zoom: int) -> Iterator[TileKey]:
        """All tile keys intersecting a bounding box, row by row."""
        x_min, y_min = CoordinateTransform.tile_index_for(lat=bbox.north, lon=bbox.west, zoom=zoom)
        x_max, y_max = CoordinateTransform.tile_index_for(lat=bbox.south, lon=bbox.east, zoom=zoom)
        for ty in range(y_min, y_max + 1):
            for tx in range(x_min, x_max + 1):
                yield TileKey(zoom=zoom, x=tx, y=ty)
