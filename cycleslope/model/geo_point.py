"""GeoPoint and BoundingBox - the geometry atoms for slope analysis.

A GeoPoint is a single WGS84 coordinate. Every path, sample and slope record
refers to locations through GeoPoints.

A BoundingBox is the viewport a path query was made for.
"""

from dataclasses import dataclass
from math import isfinite

from cycleslope.core.geo_calculator import GeoCalculator


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate.

    Attributes:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees

    Example:
        point = GeoPoint(lat=52.52, lon=13.405)
    """

    lat: float
    lon: float

    def __post_init__(self) -> None:
        """Validate data after initialization."""
        if not (isfinite(self.lat) and isfinite(self.lon)):
            raise ValueError(f"GeoPoint requires finite coordinates, got ({self.lat}, {self.lon})")

    @property
    def lat_lon(self) -> tuple[float, float]:
        """Return (lat, lon) tuple - standard geographic order."""
        return (self.lat, self.lon)

    @property
    def lon_lat(self) -> tuple[float, float]:
        """Return (lon, lat) tuple - GeoJSON order."""
        return (self.lon, self.lat)

    def distance_to(self, other: "GeoPoint") -> float:
        """Great-circle distance to another point in meters."""
        return GeoCalculator.haversine_distance_m(
            lat1=self.lat,
            lon1=self.lon,
            lat2=other.lat,
            lon2=other.lon,
        )

    def __repr__(self) -> str:
        return f"GeoPoint(lat={self.lat:.6f}, lon={self.lon:.6f})"


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box in decimal degrees.

    Attributes:
        south: Minimum latitude
        west: Minimum longitude
        north: Maximum latitude
        east: Maximum longitude
    """

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if self.south > self.north:
            raise ValueError(f"BoundingBox south ({self.south}) must not exceed north ({self.north})")
        if self.west > self.east:
            raise ValueError(f"BoundingBox west ({self.west}) must not exceed east ({self.east})")

    @property
    def overpass_filter(self) -> str:
        """Bounding box in Overpass QL order: south,west,north,east."""
        return f"{self.south},{self.west},{self.north},{self.east}"
