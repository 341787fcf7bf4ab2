"""Configuration constants for Cycle Slope.

All configurable parameters are centralized here for easy tuning.
Pipelines copy these defaults into a PipelineConfig, which can override any of them.

Classes:
    GeoConfig: Earth radii and projection limits
    TileConfig: Elevation tile source and cache parameters
    SamplingConfig: Path resampling parameters
    SlopeConfig: Smoothing and slope label parameters
    ColorConfig: Slope color clamp ranges
    JoinConfig: Endpoint matching for path joining
    OverpassConfig: Path geometry query parameters
    WorkerConfig: Thread pool sizing
"""

from pathlib import Path

# Package root directory (where cycleslope/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of cycleslope/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Output directory for slope reports
OUTPUT_DIR = PROJECT_ROOT / "output"


class GeoConfig:
    """Earth model parameters."""

    # Mean Earth radius for great-circle distances (spherical approximation)
    EARTH_RADIUS_M = 6_371_000

    # Web-Mercator sphere radius (EPSG:3857 uses the WGS84 semi-major axis)
    MERCATOR_RADIUS_M = 6_378_137

    # Latitude limit of the square Web-Mercator world
    MERCATOR_MAX_LAT = 85.05112878


class TileConfig:
    """Elevation tile source and cache parameters."""

    # AWS Terrain Tiles (free, open, no API key), Terrarium-encoded PNG
    AWS_TERRARIUM_URL = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"

    # Same dataset as single-band GeoTIFF in EPSG:3857
    AWS_GEOTIFF_URL = "https://s3.amazonaws.com/elevation-tiles-prod/geotiff/{z}/{x}/{y}.tif"

    DEFAULT_URL = AWS_TERRARIUM_URL
    DEFAULT_FORMAT = "terrarium"
    FORMATS = ["terrarium", "geotiff"]

    # Terrarium decoding: elevation = R * 256 + G + B / 256 - 32768
    TERRARIUM_R_SCALE = 256.0
    TERRARIUM_G_SCALE = 1.0
    TERRARIUM_B_SCALE = 1.0 / 256.0
    TERRARIUM_OFFSET = -32768.0

    # Zoom 12 tiles are ~9.8km wide at the equator, ~38m per pixel
    DEFAULT_ZOOM = 12
    MAX_ZOOM = 15

    # Single attempt, no retries
    REQUEST_TIMEOUT_S = 10

    # LRU bound on decoded tiles (a 256x256 float32 tile is 256KB)
    MAX_CACHED_TILES = 256

    # How long a failed fetch is remembered before the next attempt (0 = never remembered)
    FAILURE_TTL_S = 60.0


class SamplingConfig:
    """Path resampling parameters."""

    # Spacing between elevation samples along a path (100m and 150m both common)
    INTERVAL_M = 100.0

    # Paths shorter than this produce no slope records
    MIN_PATH_LENGTH_M = 1.0


class SlopeConfig:
    """Elevation smoothing and slope presentation."""

    # Moving-average window (odd). 3 = point plus its immediate neighbours
    SMOOTHING_WINDOW = 3

    # Pairs closer than this are zero-distance: slope 0 instead of dividing
    ZERO_DISTANCE_M = 1e-6

    # Decimal places in human-readable labels
    LABEL_SLOPE_DECIMALS = 1


class ColorConfig:
    """Slope color clamp ranges.

    Different deployments use different ranges: unsigned ranges color by absolute
    steepness, signed ranges separate uphill from downhill.
    """

    UNSIGNED_GENTLE_RANGE = (0.0, 5.0)
    UNSIGNED_STEEP_RANGE = (0.0, 10.0)
    SIGNED_RANGE = (-10.0, 10.0)

    DEFAULT_RANGE = UNSIGNED_STEEP_RANGE
    DEFAULT_USE_ABSOLUTE = True


class JoinConfig:
    """Endpoint matching for path joining.

    Coordinates are rounded before comparison, never compared with == directly.
    """

    # Decimal places for endpoint keys (6 decimals ≈ 10cm precision)
    KEY_DECIMALS = 6


class OverpassConfig:
    """Path geometry query parameters."""

    ENDPOINT = "https://overpass-api.de/api/interpreter"

    # Dedicated cycleways only
    DEFAULT_TAG_FILTER = '"highway"="cycleway"'

    # Point features shown alongside the slopes
    PARKING_TAG_FILTER = '"amenity"="bicycle_parking"'

    REQUEST_TIMEOUT_S = 60


class WorkerConfig:
    """Thread pool sizing for concurrent elevation lookups."""

    MAX_WORKERS = 8
