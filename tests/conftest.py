"""Shared pytest fixtures for cycleslope tests.

Provides MockTileSource and reusable test data for all cycleslope tests.
All fixtures use explicit values with documented rationale.

COORDINATE SYSTEM:
    Tests use coordinates near the equator (lat~0) and prime meridian (lon~0).
    Paths run due north, where the haversine distance is exactly
    R * dlat (R = 6,371 km), so 1 degree latitude = 111,194.93 meters.
    At zoom 12 the tile (12, 2048, 2047) covers lat 0..0.0878, lon 0..0.0879.
"""

import threading
from collections import Counter
from math import asin, atan2, cos, degrees, pi, radians, sin
from typing import Callable, Iterable, Optional

import numpy as np
import pytest

from cycleslope.constants import GeoConfig
from cycleslope.core.coordinate_transform import CoordinateTransform
from cycleslope.core.tile_cache import TileCache
from cycleslope.core.tile_source import TileFetchError
from cycleslope.model.geo_point import GeoPoint
from cycleslope.model.tile import ElevationTile, TileKey

METERS_PER_DEGREE_LAT = GeoConfig.EARTH_RADIUS_M * pi / 180

# Tile containing lat 0..0.0878 (north of the equator), lon 0..0.0879
NORTH_TILE = TileKey(zoom=12, x=2048, y=2047)

# Tile directly south of NORTH_TILE
SOUTH_TILE = TileKey(zoom=12, x=2048, y=2048)

NODATA = -9999.0


def north_of(lat: float, lon: float, distance_m: float) -> GeoPoint:
    """Point distance_m due north of (lat, lon)."""
    return GeoPoint(lat=lat + distance_m / METERS_PER_DEGREE_LAT, lon=lon)


def east_of(lat: float, lon: float, distance_m: float) -> GeoPoint:
    """Point distance_m along the great circle heading due east from (lat, lon)."""
    d = distance_m / GeoConfig.EARTH_RADIUS_M
    lat1 = radians(lat)
    lat2 = asin(sin(lat1) * cos(d))
    dlon = atan2(sin(d) * cos(lat1), cos(d) - sin(lat1) * sin(lat2))
    return GeoPoint(lat=degrees(lat2), lon=lon + degrees(dlon))


def make_tile(key: TileKey, data: np.ndarray, nodata: Optional[float] = None) -> ElevationTile:
    """ElevationTile with the slippy footprint of key."""
    return ElevationTile(
        key=key,
        data=np.asarray(data, dtype=np.float32),
        bounds=CoordinateTransform.tile_bounds(zoom=key.zoom, x=key.x, y=key.y),
        nodata=nodata,
    )


# =============================================================================
# MOCK TILE SOURCE
# =============================================================================


class MockTileSource:
    """Mock tile source returning synthetic elevation based on simple linear formula.

    Elevation formula (evaluated at each pixel center):
        elevation = base_elev + lat * METERS_PER_DEGREE_LAT * slope_ns_pct / 100
                              + lon * METERS_PER_DEGREE_LAT * slope_ew_pct / 100

    Going north (positive lat): elevation rises if slope_ns > 0.

    Rasters are 1024 px wide (~9.6m per pixel at zoom 12), so quantization
    error stays below 0.5m on a 10% grade.

    Example with base=100m, slope_ns=10%:
        - lat=0.000: 100m
        - lat=0.009 (~1000m north): ~200m (10% grade)
    """

    def __init__(
        self,
        base_elevation: float,
        slope_ns_pct: float,
        slope_ew_pct: float = 0.0,
        size: int = 1024,
        failing: Iterable[TileKey] = (),
        nodata_keys: Iterable[TileKey] = (),
        gate: Optional[threading.Event] = None,
    ) -> None:
        """Initialize mock source.

        Args:
            base_elevation: Elevation at origin (lat=0, lon=0)
            slope_ns_pct: North-south slope percentage. Positive = rises going north.
            slope_ew_pct: East-west slope percentage. Positive = rises going east.
            size: Raster width and height in pixels
            failing: Keys whose load raises TileFetchError("HTTP 503")
            nodata_keys: Keys whose raster is entirely nodata
            gate: If given, load() blocks until the event is set
        """
        self.base_elevation = base_elevation
        self.slope_ns_pct = slope_ns_pct
        self.slope_ew_pct = slope_ew_pct
        self.size = size
        self.failing = set(failing)
        self.nodata_keys = set(nodata_keys)
        self.gate = gate
        self.calls: Counter[TileKey] = Counter()
        self._lock = threading.Lock()

    def elevation_at(self, lat: float, lon: float) -> float:
        M = METERS_PER_DEGREE_LAT
        return self.base_elevation + lat * M * (self.slope_ns_pct / 100) + lon * M * (self.slope_ew_pct / 100)

    def load(self, key: TileKey) -> ElevationTile:
        with self._lock:
            self.calls[key] += 1
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if key in self.failing:
            raise TileFetchError(key, "HTTP 503")
        if key in self.nodata_keys:
            return make_tile(key, np.full((self.size, self.size), NODATA), nodata=NODATA)

        bounds = CoordinateTransform.tile_bounds(zoom=key.zoom, x=key.x, y=key.y)
        centers = (np.arange(self.size) + 0.5) / self.size
        xs = bounds.min_x + centers * bounds.width_m
        ys = bounds.max_y - centers * bounds.height_m
        R = GeoConfig.MERCATOR_RADIUS_M
        lons = np.degrees(xs / R)
        lats = np.degrees(2 * np.arctan(np.exp(ys / R)) - pi / 2)
        lon_grid, lat_grid = np.meshgrid(lons, lats)
        return make_tile(key, self.elevation_at(lat_grid, lon_grid))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# MOCK TILE FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_shared_tile_cache():
    """Tests never share the process-wide cache."""
    yield
    TileCache.reset_shared()


@pytest.fixture
def tiles_10pct_north() -> MockTileSource:
    """Mock tiles: 10% grade rising north, flat east-west.

    At origin (0,0): 100m elevation.
    Moving 1000m north: rises to 200m.
    """
    return MockTileSource(base_elevation=100.0, slope_ns_pct=10.0)


@pytest.fixture
def tiles_flat() -> MockTileSource:
    """Mock tiles: constant 50m everywhere."""
    return MockTileSource(base_elevation=50.0, slope_ns_pct=0.0, size=16)


@pytest.fixture
def tiles_north_failing() -> MockTileSource:
    """Mock tiles: 10% grade rising north, but the tile north of the equator fails."""
    return MockTileSource(base_elevation=100.0, slope_ns_pct=10.0, failing=[NORTH_TILE])


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_factory() -> Callable[..., TileCache]:
    """Create isolated (non-shared) caches around a source."""

    def factory(source: MockTileSource, **kwargs) -> TileCache:
        return TileCache(source=source, **kwargs)

    return factory


# =============================================================================
# PATH FIXTURES
# =============================================================================


@pytest.fixture
def path_north() -> list[GeoPoint]:
    """Straight 1050m path due north inside NORTH_TILE, three vertices."""
    start = GeoPoint(lat=0.001, lon=0.001)
    return [start, north_of(start.lat, start.lon, 400.0), north_of(start.lat, start.lon, 1050.0)]


@pytest.fixture
def path_across_equator() -> list[GeoPoint]:
    """Straight 4000m path due north from SOUTH_TILE into NORTH_TILE."""
    start = GeoPoint(lat=-0.018, lon=0.001)
    return [start, north_of(start.lat, start.lon, 4000.0)]
