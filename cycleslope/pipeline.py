"""SlopePipeline - turns raw path geometry into colored slope overlays.

The map layer calls on_viewport_or_paths_changed() whenever it wants fresh
slopes for a viewport. For each request the pipeline:

1. Parses raw segments (malformed or empty ones become issues)
2. Optionally joins segments sharing endpoints into continuous paths
3. Per path, concurrently: resample, sample elevations, compute slopes, color them

Nothing raises out of a request: partial results carry PipelineIssues instead.
In-flight requests are never cancelled, so results can arrive out of order;
LatestResult keeps only the newest one (last write wins).
"""

import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from shapely.geometry import LineString, mapping

from cycleslope.constants import JoinConfig, SamplingConfig, SlopeConfig, TileConfig, WorkerConfig
from cycleslope.core.color_mapper import ColorScale
from cycleslope.core.coordinate_transform import CoordinateTransform
from cycleslope.core.elevation_sampler import ElevationSampler
from cycleslope.core.path_joiner import PathJoiner
from cycleslope.core.path_resampler import PathResampler
from cycleslope.core.slope_calculator import SlopeCalculator
from cycleslope.core.tile_cache import TileCache
from cycleslope.core.tile_source import HttpTileSource
from cycleslope.model.geo_point import BoundingBox, GeoPoint
from cycleslope.model.issue import (
    DegenerateSegment,
    MalformedSegment,
    PathQueryFailure,
    PipelineIssue,
    ZeroDistancePair,
)
from cycleslope.model.path_segment import (
    JoinedPath,
    PathSegment,
    RawPoint,
    SampledPoint,
    parse_point,
    polyline_length_m,
)
from cycleslope.model.slope_record import SlopeOverlay, SlopeRecord
from cycleslope.sources.overpass import PathQuery, PathQueryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """Tunable parameters for one pipeline.

    Defaults come from cycleslope.constants. Tile source settings only apply
    when the pipeline creates the shared cache.
    """

    sample_interval_m: float = SamplingConfig.INTERVAL_M
    min_path_length_m: float = SamplingConfig.MIN_PATH_LENGTH_M
    zoom: int = TileConfig.DEFAULT_ZOOM
    smoothing_window: int = SlopeConfig.SMOOTHING_WINDOW
    color_scale: ColorScale = field(default_factory=ColorScale)
    join_paths: bool = True
    slopes_on_joined: bool = False
    join_key_decimals: int = JoinConfig.KEY_DECIMALS
    max_workers: int = WorkerConfig.MAX_WORKERS
    tile_url_template: str = TileConfig.DEFAULT_URL
    raster_format: str = TileConfig.DEFAULT_FORMAT
    tile_timeout_s: float = TileConfig.REQUEST_TIMEOUT_S
    max_cached_tiles: int = TileConfig.MAX_CACHED_TILES
    failure_ttl_s: float = TileConfig.FAILURE_TTL_S


@dataclass
class PathSlopes:
    """Slope output for one path.

    Attributes:
        path_index: Index of the raw segment (or joined path) this was computed for
        source_length_m: Arc length of the input geometry
        samples: Resampled points with elevations
        records: One record per consecutive sample pair
        overlays: Records with colors, same order as records
        issues: Diagnostics for this path
    """

    path_index: int
    source_length_m: float
    samples: list[SampledPoint] = field(default_factory=list)
    records: list[SlopeRecord] = field(default_factory=list)
    overlays: list[SlopeOverlay] = field(default_factory=list)
    issues: list[PipelineIssue] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        """True if the path produced no slope records."""
        return not self.records


@dataclass
class PipelineResult:
    """Everything one request produced.

    Attributes:
        request_id: Increases with every request made through the same pipeline
        bbox: Viewport the request was made for
        paths: Per-path slopes, in input order
        joined_paths: Merged paths (empty when joining is disabled)
        issues: Request-level issues followed by every path's issues
    """

    request_id: int
    bbox: Optional[BoundingBox]
    paths: list[PathSlopes] = field(default_factory=list)
    joined_paths: list[JoinedPath] = field(default_factory=list)
    issues: list[PipelineIssue] = field(default_factory=list)

    @property
    def records(self) -> list[SlopeRecord]:
        return [r for p in self.paths for r in p.records]

    def to_feature_collection(self) -> dict[str, Any]:
        """GeoJSON FeatureCollection of slope sub-segments and joined paths."""
        features: list[dict[str, Any]] = []
        for path in self.paths:
            for overlay in path.overlays:
                features.append(
                    {
                        "type": "Feature",
                        "geometry": mapping(LineString(overlay.coordinates)),
                        "properties": {
                            "kind": "slope",
                            "path_index": path.path_index,
                            "slope_pct": round(overlay.record.slope_pct, 2),
                            "elevation_delta_m": round(overlay.record.elevation_delta_m, 2),
                            "color": overlay.color.hex,
                            "label": overlay.label,
                        },
                    }
                )
        for i, joined in enumerate(self.joined_paths):
            if len(joined.points) < 2:
                continue
            features.append(
                {
                    "type": "Feature",
                    "geometry": mapping(joined.to_linestring()),
                    "properties": {
                        "kind": "joined_path",
                        "joined_index": i,
                        "segment_indices": list(joined.segment_indices),
                        "length_m": round(joined.length_m, 1),
                    },
                }
            )
        return {"type": "FeatureCollection", "features": features}


class LatestResult:
    """Last-write-wins holder at the rendering boundary.

    Results of older requests arriving after a newer one are discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[PipelineResult] = None

    @property
    def current(self) -> Optional[PipelineResult]:
        with self._lock:
            return self._current

    def offer(self, result: PipelineResult) -> bool:
        """Keep result if it is newer than the current one.

        Returns:
            True if result became current, False if it was stale.
        """
        with self._lock:
            if self._current is not None and result.request_id <= self._current.request_id:
                logger.debug(f"Discarding stale result {result.request_id} (current {self._current.request_id})")
                return False
            self._current = result
            return True


class SlopePipeline:
    """Computes colored slope overlays for batches of raw path segments.

    Example:
        pipeline = SlopePipeline(config=PipelineConfig(sample_interval_m=150.0))
        result = pipeline.on_viewport_or_paths_changed(bbox, raw_segments)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        cache: Optional[TileCache] = None,
        path_query: Optional[PathQuery] = None,
    ):
        """Initialize pipeline.

        Args:
            config: Parameters (defaults from constants if not provided)
            cache: Tile cache (the shared process-wide cache if not provided)
            path_query: Geometry source used by refresh()
        """
        self.config = config if config is not None else PipelineConfig()
        if cache is None:
            cache = TileCache.shared(
                source=HttpTileSource(
                    url_template=self.config.tile_url_template,
                    raster_format=self.config.raster_format,
                    timeout_s=self.config.tile_timeout_s,
                ),
                max_tiles=self.config.max_cached_tiles,
                failure_ttl_s=self.config.failure_ttl_s,
            )
        self._cache = cache
        self._path_query = path_query
        self._resampler = PathResampler(
            interval_m=self.config.sample_interval_m,
            min_length_m=self.config.min_path_length_m,
        )
        self._sampler = ElevationSampler(cache=cache, zoom=self.config.zoom, max_workers=self.config.max_workers)
        self._calculator = SlopeCalculator(smoothing_window=self.config.smoothing_window)
        self._joiner = PathJoiner(key_decimals=self.config.join_key_decimals)
        self._request_ids = itertools.count(1)
        self._request_lock = threading.Lock()

    @property
    def cache(self) -> TileCache:
        """Access the tile cache."""
        return self._cache

    def _next_request_id(self) -> int:
        with self._request_lock:
            return next(self._request_ids)

    def on_viewport_or_paths_changed(
        self,
        bbox: Optional[BoundingBox],
        raw_segments: Iterable[Iterable[RawPoint]],
    ) -> PipelineResult:
        """Compute slopes (and joined paths) for one batch of raw segments.

        Args:
            bbox: Viewport the segments were queried for (carried through)
            raw_segments: Segments as lists of {latitude, longitude}, {lat, lon} or (lat, lon)

        Returns:
            PipelineResult; never raises for bad data or unavailable elevations.
        """
        request_id = self._next_request_id()
        start_time = time.time()
        issues: list[PipelineIssue] = []

        parsed: list[tuple[int, tuple[GeoPoint, ...]]] = []
        for i, raw in enumerate(raw_segments):
            try:
                points = tuple(parse_point(p) for p in raw)
            except (ValueError, TypeError, KeyError) as e:
                logger.warning(f"Ignoring malformed segment {i}: {e}")
                issues.append(MalformedSegment(path_index=i, reason=str(e)))
                continue
            if not points:
                issues.append(DegenerateSegment(path_index=i, length_m=0.0, point_count=0))
                continue
            parsed.append((i, points))

        joined: list[JoinedPath] = []
        if self.config.join_paths and parsed:
            joined = [
                JoinedPath(points=j.points, segment_indices=tuple(parsed[k][0] for k in j.segment_indices))
                for j in self._joiner.join([points for _, points in parsed])
            ]

        if self.config.join_paths and self.config.slopes_on_joined:
            targets: Sequence[tuple[int, tuple[GeoPoint, ...]]] = list(enumerate(j.points for j in joined))
        else:
            targets = parsed

        paths: list[PathSlopes] = []
        if targets:
            with ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="path") as executor:
                paths = list(executor.map(lambda t: self._process_path_safely(*t), targets))

        for path in paths:
            issues.extend(path.issues)

        elapsed = time.time() - start_time
        record_count = sum(len(p.records) for p in paths)
        logger.info(
            f"Request {request_id}: {len(paths)} paths, {record_count} slope records, "
            f"{len(joined)} joined paths, {len(issues)} issues in {elapsed:.2f}s"
        )
        return PipelineResult(request_id=request_id, bbox=bbox, paths=paths, joined_paths=joined, issues=issues)

    def refresh(self, bbox: BoundingBox) -> PipelineResult:
        """Query path geometry for bbox, then compute slopes for it.

        Raises:
            RuntimeError: If the pipeline was created without a path_query.
        """
        if self._path_query is None:
            raise RuntimeError("refresh() requires a path_query")
        try:
            raw_segments = self._path_query.fetch_segments(bbox)
        except PathQueryError as e:
            logger.error(f"Path query failed for {bbox.overpass_filter}: {e}")
            return PipelineResult(
                request_id=self._next_request_id(),
                bbox=bbox,
                issues=[PathQueryFailure(reason=str(e))],
            )
        return self.on_viewport_or_paths_changed(bbox, raw_segments)

    def warm_tiles(self, bbox: BoundingBox) -> int:
        """Prefetch every elevation tile covering bbox. Returns the number loaded."""
        keys = list(CoordinateTransform.tiles_covering(bbox=bbox, zoom=self.config.zoom))
        return self._cache.prefetch(keys, max_workers=self.config.max_workers)

    def process_path(self, path_index: int, points: Sequence[GeoPoint]) -> PathSlopes:
        """Resample one path, sample its elevations and compute colored slopes."""
        if self._resampler.is_degenerate(points):
            length_m = polyline_length_m(points)
            logger.debug(f"Path {path_index} is degenerate ({len(points)} points, {length_m:.2f}m)")
            return PathSlopes(
                path_index=path_index,
                source_length_m=length_m,
                issues=[DegenerateSegment(path_index=path_index, length_m=length_m, point_count=len(points))],
            )

        segment = PathSegment(points=tuple(points))
        length_m = segment.length_m
        samples, issues = self._sampler.sample_points(self._resampler.resample(segment))
        records = self._calculator.compute_slopes(samples)
        issues.extend(
            ZeroDistancePair(path_index=path_index, pair_index=i)
            for i in SlopeCalculator.zero_distance_pairs(records)
        )
        color_scale = self.config.color_scale
        overlays = [SlopeOverlay(record=r, color=color_scale.color_for(r.slope_pct)) for r in records]
        return PathSlopes(
            path_index=path_index,
            source_length_m=length_m,
            samples=samples,
            records=records,
            overlays=overlays,
            issues=issues,
        )

    def _process_path_safely(self, path_index: int, points: Sequence[GeoPoint]) -> PathSlopes:
        try:
            return self.process_path(path_index, points)
        except Exception:
            logger.exception(f"Slope computation failed for path {path_index}")
            return PathSlopes(path_index=path_index, source_length_m=0.0)

    def close(self) -> None:
        """Release worker threads. The tile cache stays alive."""
        self._sampler.close()

    def __enter__(self) -> "SlopePipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
