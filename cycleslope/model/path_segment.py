"""Path geometry: raw segments, sampled points and joined paths.

PathSegment is a polyline as delivered by the geometry source.
SampledPoint is one evenly spaced position along a path, optionally with elevation.
JoinedPath is the result of merging segments that share endpoints.
"""

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Sequence, Union

from shapely.geometry import LineString

from cycleslope.core.geo_calculator import GeoCalculator
from cycleslope.model.geo_point import GeoPoint

RawPoint = Union[Mapping[str, Any], Sequence[float]]


def parse_point(raw: RawPoint) -> GeoPoint:
    """Build a GeoPoint from the shapes geometry sources deliver.

    Accepts {"latitude", "longitude"} and {"lat", "lon"} mappings, (lat, lon)
    pairs, or an existing GeoPoint.
    """
    if isinstance(raw, GeoPoint):
        return raw
    if isinstance(raw, Mapping):
        if "latitude" in raw:
            return GeoPoint(lat=float(raw["latitude"]), lon=float(raw["longitude"]))
        if "lat" in raw:
            return GeoPoint(lat=float(raw["lat"]), lon=float(raw["lon"]))
        raise ValueError(f"Point mapping needs latitude/longitude or lat/lon keys, got {sorted(raw)}")
    if len(raw) != 2:
        raise ValueError(f"Point pair must be (lat, lon), got {raw!r}")
    return GeoPoint(lat=float(raw[0]), lon=float(raw[1]))


def polyline_length_m(points: Sequence[GeoPoint]) -> float:
    """Sum of great-circle distances between consecutive points."""
    if len(points) < 2:
        return 0.0
    cumulative = GeoCalculator.cumulative_distances_m([p.lat for p in points], [p.lon for p in points])
    return float(cumulative[-1])


@dataclass(frozen=True)
class PathSegment:
    """An ordered polyline of at least two points.

    Attributes:
        points: Vertices in travel order
    """

    points: tuple[GeoPoint, ...]

    def __post_init__(self) -> None:
        if len(self.points) < 2:
            raise ValueError(f"PathSegment needs at least 2 points, got {len(self.points)}")

    @property
    def length_m(self) -> float:
        """Total arc length in meters."""
        return polyline_length_m(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return f"PathSegment({len(self.points)} pts, {self.length_m:.0f}m)"


@dataclass(frozen=True)
class SampledPoint:
    """A resampled position along a path.

    Attributes:
        point: Location
        distance_m: Arc length from the path start
        elevation: Elevation in meters, None until sampled or when unavailable
    """

    point: GeoPoint
    distance_m: float
    elevation: Optional[float] = None

    @property
    def lat(self) -> float:
        return self.point.lat

    @property
    def lon(self) -> float:
        return self.point.lon

    def with_elevation(self, elevation: Optional[float]) -> "SampledPoint":
        return replace(self, elevation=elevation)


@dataclass(frozen=True)
class JoinedPath:
    """A continuous path merged from one or more input segments.

    Attributes:
        points: Merged vertices, shared endpoints appear once
        segment_indices: Input segment indices in the order they appear along the path
    """

    points: tuple[GeoPoint, ...]
    segment_indices: tuple[int, ...]

    @property
    def length_m(self) -> float:
        return polyline_length_m(self.points)

    def to_linestring(self) -> LineString:
        """Shapely LineString in (lon, lat) order."""
        return LineString([p.lon_lat for p in self.points])
