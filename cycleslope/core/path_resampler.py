"""Arc-length resampling of paths into evenly spaced points.

Algorithm:
1. Cumulative great-circle distance at each vertex gives total length L
2. Point count n = ceil(L / interval), actual step L / n, so the last step lands on L
3. Positions at 0, L/n, ..., L are interpolated between the enclosing vertices
4. The final sample is snapped to the true terminal vertex

Paths shorter than the minimum length are degenerate and yield no samples.
"""

import logging
from math import ceil
from typing import Sequence, Union

import numpy as np

from cycleslope.constants import SamplingConfig
from cycleslope.core.geo_calculator import GeoCalculator
from cycleslope.model.geo_point import GeoPoint
from cycleslope.model.path_segment import PathSegment, SampledPoint

logger = logging.getLogger(__name__)


class PathResampler:
    """Produces evenly spaced samples along a path.

    Example:
        resampler = PathResampler(interval_m=100.0)
        samples = resampler.resample(segment)
    """

    def __init__(
        self,
        interval_m: float = SamplingConfig.INTERVAL_M,
        min_length_m: float = SamplingConfig.MIN_PATH_LENGTH_M,
    ):
        """Initialize resampler.

        Args:
            interval_m: Target spacing between samples in meters
            min_length_m: Paths shorter than this produce no samples
        """
        if interval_m <= 0:
            raise ValueError(f"interval_m must be positive, got {interval_m}")
        if min_length_m < 0:
            raise ValueError(f"min_length_m must not be negative, got {min_length_m}")
        self.interval_m = interval_m
        self.min_length_m = min_length_m

    def is_degenerate(self, path: Union[PathSegment, Sequence[GeoPoint]]) -> bool:
        """Check whether a path is too short to sample."""
        points = path.points if isinstance(path, PathSegment) else path
        if len(points) < 2:
            return True
        length = GeoCalculator.cumulative_distances_m([p.lat for p in points], [p.lon for p in points])[-1]
        return bool(length < self.min_length_m)

    def resample(self, path: Union[PathSegment, Sequence[GeoPoint]]) -> list[SampledPoint]:
        """Resample a path at (approximately) interval_m spacing.

        Args:
            path: PathSegment or sequence of GeoPoints

        Returns:
            n + 1 samples (n + 2 if the terminal snap added one) whose first and
            last points are exactly the path's endpoints. Empty for degenerate paths.
        """
        points = path.points if isinstance(path, PathSegment) else tuple(path)
        if len(points) < 2:
            return []

        lats = np.array([p.lat for p in points])
        lons = np.array([p.lon for p in points])
        cumulative = GeoCalculator.cumulative_distances_m(lats, lons)
        total_length = float(cumulative[-1])
        if total_length < self.min_length_m:
            logger.debug(f"Skipping degenerate path: {len(points)} points, {total_length:.2f}m")
            return []

        n = max(1, ceil(total_length / self.interval_m))
        targets = np.linspace(0.0, total_length, n + 1)

        sample_lats = np.interp(targets, cumulative, lats)
        sample_lons = np.interp(targets, cumulative, lons)

        samples = [SampledPoint(point=points[0], distance_m=0.0)]
        samples.extend(
            SampledPoint(point=GeoPoint(lat=float(lat), lon=float(lon)), distance_m=float(d))
            for lat, lon, d in zip(sample_lats[1:], sample_lons[1:], targets[1:])
        )

        terminal = points[-1]
        if samples[-1].point != terminal:
            samples.append(SampledPoint(point=terminal, distance_m=total_length))

        return samples
