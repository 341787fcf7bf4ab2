"""PipelineIssue - diagnostics for degraded slope results.

Issues record why part of a result is missing or defaulted:
- Tile fetch failures, out-of-bounds and nodata samples (elevation unavailable)
- Degenerate and malformed segments (no slope records)
- Zero-distance pairs (slope forced to 0)
- Path query failures (no paths at all)

Issues are attached to results. They never propagate as exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from cycleslope.model.tile import TileKey


@dataclass(frozen=True)
class PipelineIssue(ABC):
    """Abstract base class for pipeline diagnostics.

    Subclasses store specific parameters and compute message as property.
    Use isinstance() to check issue type.
    """

    @property
    @abstractmethod
    def message(self) -> str:
        """Human-readable description."""

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class TileFetchFailure(PipelineIssue):
    """Elevation tile could not be fetched or decoded.

    Attributes:
        key: Tile that failed
        reason: Transport, status or decoding error text
    """

    key: TileKey
    reason: str
    issue_type: str = "TileFetchFailure"

    @property
    def message(self) -> str:
        return f"Tile {self.key} unavailable: {self.reason}"


@dataclass(frozen=True)
class OutOfBoundsSample(PipelineIssue):
    """Projected point fell outside the raster of the tile resolved for it.

    Attributes:
        key: Tile that was resolved
        lat: Sample latitude
        lon: Sample longitude
        pixel: Computed (px, py), outside the raster
    """

    key: TileKey
    lat: float
    lon: float
    pixel: tuple[int, int]
    issue_type: str = "OutOfBoundsSample"

    @property
    def message(self) -> str:
        return f"Sample ({self.lat:.6f}, {self.lon:.6f}) maps to pixel {self.pixel} outside tile {self.key}"


@dataclass(frozen=True)
class NoDataSample(PipelineIssue):
    """Raster holds its nodata marker (or NaN) at the sample pixel."""

    key: TileKey
    lat: float
    lon: float
    issue_type: str = "NoDataSample"

    @property
    def message(self) -> str:
        return f"No elevation data at ({self.lat:.6f}, {self.lon:.6f}) in tile {self.key}"


@dataclass(frozen=True)
class DegenerateSegment(PipelineIssue):
    """Path too short to sample; no slope records produced for it.

    Attributes:
        path_index: Index of the path in the request
        length_m: Measured arc length
        point_count: Number of vertices
    """

    path_index: int
    length_m: float
    point_count: int
    issue_type: str = "DegenerateSegment"

    @property
    def message(self) -> str:
        return f"Path {self.path_index} skipped: {self.point_count} point(s), {self.length_m:.2f}m long"


@dataclass(frozen=True)
class MalformedSegment(PipelineIssue):
    """Raw segment could not be parsed into coordinates; it is left out entirely.

    Attributes:
        path_index: Index of the raw segment in the request
        reason: Parse error text
    """

    path_index: int
    reason: str
    issue_type: str = "MalformedSegment"

    @property
    def message(self) -> str:
        return f"Segment {self.path_index} ignored: {self.reason}"


@dataclass(frozen=True)
class PathQueryFailure(PipelineIssue):
    """Path geometry query failed; the request produced no paths."""

    reason: str
    issue_type: str = "PathQueryFailure"

    @property
    def message(self) -> str:
        return f"Path query failed: {self.reason}"


@dataclass(frozen=True)
class ZeroDistancePair(PipelineIssue):
    """Consecutive samples at the same location; slope reported as 0.

    Attributes:
        path_index: Index of the path in the request
        pair_index: Index of the sub-segment within the path
    """

    path_index: int
    pair_index: int
    issue_type: str = "ZeroDistancePair"

    @property
    def message(self) -> str:
        return f"Path {self.path_index} sub-segment {self.pair_index} has zero length, slope set to 0"
