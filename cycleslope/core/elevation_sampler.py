"""Elevation lookup at arbitrary coordinates from cached raster tiles.

Resolves a point to its slippy tile, fetches the tile through TileCache,
projects the point into the tile's pixel grid and reads the raster value.

Absence is the only failure signal for data problems: a missing tile, a nodata
pixel or a point outside the raster never raises. ElevationLookup additionally
reports why an elevation is missing. Only an invalid zoom raises ValueError.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from math import isfinite
from typing import Optional, Sequence

from cycleslope.constants import TileConfig, WorkerConfig
from cycleslope.core.coordinate_transform import CoordinateTransform
from cycleslope.core.tile_cache import TileCache
from cycleslope.model.issue import NoDataSample, OutOfBoundsSample, PipelineIssue, TileFetchFailure
from cycleslope.model.path_segment import SampledPoint
from cycleslope.model.tile import TileKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElevationLookup:
    """Result of a single elevation lookup.

    Attributes:
        elevation: Elevation in meters, or None if unavailable
        issue: Why the elevation is unavailable (None on success)
    """

    elevation: Optional[float]
    issue: Optional[PipelineIssue] = None


class ElevationSampler:
    """Samples elevations from a TileCache.

    Example:
        sampler = ElevationSampler()
        elevation = sampler.elevation_at(lat=52.52, lon=13.405)
    """

    def __init__(
        self,
        cache: Optional[TileCache] = None,
        zoom: int = TileConfig.DEFAULT_ZOOM,
        max_workers: int = WorkerConfig.MAX_WORKERS,
    ):
        """Initialize sampler.

        Args:
            cache: Tile cache to read from (the shared cache if not provided)
            zoom: Default tile zoom for lookups
            max_workers: Threads used by sample_points
        """
        if not 0 <= zoom <= TileConfig.MAX_ZOOM:
            raise ValueError(f"zoom must be within [0, {TileConfig.MAX_ZOOM}], got {zoom}")
        self._cache = cache if cache is not None else TileCache.shared()
        self.zoom = zoom
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="elevation")

    @property
    def cache(self) -> TileCache:
        """Access the tile cache."""
        return self._cache

    def _resolve_zoom(self, zoom: Optional[int]) -> int:
        if zoom is None:
            return self.zoom
        if not 0 <= zoom <= TileConfig.MAX_ZOOM:
            raise ValueError(f"zoom must be within [0, {TileConfig.MAX_ZOOM}], got {zoom}")
        return zoom

    def lookup(self, lat: float, lon: float, zoom: Optional[int] = None) -> ElevationLookup:
        """Look up the elevation at a coordinate.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees
            zoom: Tile zoom (sampler default if not provided)

        Returns:
            ElevationLookup with the raster value, or None and the reason.

        Raises:
            ValueError: If zoom is outside [0, TileConfig.MAX_ZOOM].
        """
        zoom = self._resolve_zoom(zoom)
        projected = CoordinateTransform.project_to_mercator(lat=lat, lon=lon)
        return self._lookup_projected(lat=lat, lon=lon, projected=projected, zoom=zoom)

    def _lookup_projected(
        self,
        lat: float,
        lon: float,
        projected: tuple[float, float],
        zoom: int,
    ) -> ElevationLookup:
        tx, ty = CoordinateTransform.tile_index_for(lat=lat, lon=lon, zoom=zoom)
        key = TileKey(zoom=zoom, x=tx, y=ty)

        tile = self._cache.get(key)
        if tile is None:
            reason = self._cache.last_failure(key) or "fetch failed"
            return ElevationLookup(elevation=None, issue=TileFetchFailure(key=key, reason=reason))

        if not (isfinite(projected[0]) and isfinite(projected[1])):
            return ElevationLookup(
                elevation=None,
                issue=OutOfBoundsSample(key=key, lat=lat, lon=lon, pixel=(-1, -1)),
            )

        px, py = CoordinateTransform.pixel_for(
            projected=projected, bounds=tile.bounds, width=tile.width, height=tile.height
        )
        if px < 0 or px >= tile.width or py < 0 or py >= tile.height:
            logger.debug(f"Sample ({lat:.6f}, {lon:.6f}) outside tile {key} at pixel ({px}, {py})")
            return ElevationLookup(
                elevation=None,
                issue=OutOfBoundsSample(key=key, lat=lat, lon=lon, pixel=(px, py)),
            )

        elevation = tile.value_at(px=px, py=py)
        if elevation is None:
            return ElevationLookup(elevation=None, issue=NoDataSample(key=key, lat=lat, lon=lon))
        return ElevationLookup(elevation=elevation)

    def elevation_at(self, lat: float, lon: float, zoom: Optional[int] = None) -> Optional[float]:
        """Elevation in meters at a coordinate, or None if unavailable."""
        return self.lookup(lat=lat, lon=lon, zoom=zoom).elevation

    def sample_points(
        self,
        points: Sequence[SampledPoint],
        zoom: Optional[int] = None,
    ) -> tuple[list[SampledPoint], list[PipelineIssue]]:
        """Attach elevations to sampled points.

        The whole batch is projected to Web-Mercator in one call, then all
        lookups are issued concurrently. Results are recombined by input
        index, so output order never depends on fetch completion order.

        Args:
            points: Sampled points (elevation unset)
            zoom: Tile zoom (sampler default if not provided)

        Returns:
            Tuple of (points with elevations, distinct issues in first-seen order).
        """
        zoom = self._resolve_zoom(zoom)
        if not points:
            return [], []

        xs, ys = CoordinateTransform.project_many([p.lat for p in points], [p.lon for p in points])
        lookups = list(
            self._executor.map(
                lambda p, x, y: self._lookup_projected(lat=p.lat, lon=p.lon, projected=(float(x), float(y)), zoom=zoom),
                points,
                xs,
                ys,
            )
        )

        sampled = [p.with_elevation(r.elevation) for p, r in zip(points, lookups)]
        issues = list(dict.fromkeys(r.issue for r in lookups if r.issue is not None))
        missing = sum(1 for r in lookups if r.elevation is None)
        if missing:
            logger.info(f"{missing}/{len(points)} samples have no elevation")
        return sampled, issues

    def close(self) -> None:
        """Shut down the lookup thread pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ElevationSampler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
