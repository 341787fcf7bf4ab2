"""Data model classes for slope analysis.

- GeoPoint: Geometry atom (lat, lon)
- BoundingBox: Viewport of a path query
- TileKey / MercatorBounds / ElevationTile: Elevation raster tiles
- PathSegment: Raw polyline from the geometry source
- SampledPoint: Resampled position with optional elevation
- JoinedPath: Continuous path merged from segments
- SlopeRecord / SlopeOverlay: Output units for rendering
- PipelineIssue: Diagnostics for degraded results
"""

from cycleslope.model.geo_point import BoundingBox, GeoPoint
from cycleslope.model.issue import (
    DegenerateSegment,
    MalformedSegment,
    NoDataSample,
    OutOfBoundsSample,
    PathQueryFailure,
    PipelineIssue,
    TileFetchFailure,
    ZeroDistancePair,
)
from cycleslope.model.path_segment import JoinedPath, PathSegment, SampledPoint
from cycleslope.model.slope_record import SlopeOverlay, SlopeRecord
from cycleslope.model.tile import ElevationTile, MercatorBounds, TileKey

__all__ = [
    "GeoPoint",
    "BoundingBox",
    "TileKey",
    "MercatorBounds",
    "ElevationTile",
    "PathSegment",
    "SampledPoint",
    "JoinedPath",
    "SlopeRecord",
    "SlopeOverlay",
    "PipelineIssue",
    "TileFetchFailure",
    "OutOfBoundsSample",
    "NoDataSample",
    "DegenerateSegment",
    "MalformedSegment",
    "PathQueryFailure",
    "ZeroDistancePair",
]
