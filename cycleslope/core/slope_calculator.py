"""Per-sub-segment slope computation with elevation smoothing.

Steps:
1. Missing elevations default to 0 m (explicit default, not propagated as None)
2. Moving average over each point and its immediate neighbours; at the path
   ends the missing neighbour is replaced by the point's own value
3. For each consecutive pair: great-circle distance and
   slope = (delta elevation / distance) * 100

Zero-distance pairs and pairs touching a missing elevation report slope 0.
"""

import logging
from typing import Sequence

import numpy as np
from scipy.ndimage import uniform_filter1d

from cycleslope.constants import SlopeConfig
from cycleslope.core.geo_calculator import GeoCalculator
from cycleslope.model.path_segment import SampledPoint
from cycleslope.model.slope_record import SlopeRecord

logger = logging.getLogger(__name__)


class SlopeCalculator:
    """Computes SlopeRecords from elevation-annotated samples.

    Example:
        calculator = SlopeCalculator()
        records = calculator.compute_slopes(samples)
    """

    def __init__(self, smoothing_window: int = SlopeConfig.SMOOTHING_WINDOW):
        """Initialize calculator.

        Args:
            smoothing_window: Odd moving-average width; 1 disables smoothing
        """
        if smoothing_window < 1 or smoothing_window % 2 == 0:
            raise ValueError(f"smoothing_window must be a positive odd number, got {smoothing_window}")
        self.smoothing_window = smoothing_window

    def smooth(self, elevations: Sequence[float]) -> np.ndarray:
        """Moving average with edge clamping.

        Sequences shorter than the window are returned unchanged.
        """
        values = np.asarray(elevations, dtype=float)
        if self.smoothing_window == 1 or values.size < self.smoothing_window:
            return values
        return uniform_filter1d(values, size=self.smoothing_window, mode="nearest")

    def compute_slopes(self, points: Sequence[SampledPoint]) -> list[SlopeRecord]:
        """Compute one SlopeRecord per consecutive pair of samples.

        Args:
            points: Samples in path order, elevations possibly None

        Returns:
            len(points) - 1 records in the same order (empty for < 2 points).
        """
        if len(points) < 2:
            return []

        raw = [p.elevation for p in points]
        smoothed = self.smooth([0.0 if e is None else e for e in raw])
        cumulative = GeoCalculator.cumulative_distances_m([p.lat for p in points], [p.lon for p in points])
        distances = np.diff(cumulative)

        records: list[SlopeRecord] = []
        for i, distance in enumerate(distances):
            distance = float(distance)
            if raw[i] is None or raw[i + 1] is None:
                delta = 0.0
                slope = 0.0
            else:
                delta = float(smoothed[i + 1] - smoothed[i])
                slope = 0.0 if distance <= SlopeConfig.ZERO_DISTANCE_M else (delta / distance) * 100
            records.append(
                SlopeRecord(
                    start=points[i],
                    end=points[i + 1],
                    slope_pct=slope,
                    elevation_delta_m=delta,
                    distance_m=distance,
                )
            )
        return records

    @staticmethod
    def zero_distance_pairs(records: Sequence[SlopeRecord]) -> list[int]:
        """Indices of records whose slope was forced to 0 by zero distance."""
        return [i for i, r in enumerate(records) if r.distance_m <= SlopeConfig.ZERO_DISTANCE_M]
