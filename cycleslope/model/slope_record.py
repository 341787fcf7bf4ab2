"""SlopeRecord - the output unit handed to the rendering layer.

One record describes the sub-segment between two consecutive sampled points.
SlopeOverlay pairs a record with its display color.
"""

from dataclasses import dataclass

from cycleslope.constants import SlopeConfig
from cycleslope.core.color_mapper import SlopeColor
from cycleslope.model.path_segment import SampledPoint


@dataclass(frozen=True)
class SlopeRecord:
    """Slope of one sub-segment.

    Attributes:
        start: Sampled point at the start of the sub-segment
        end: Sampled point at the end of the sub-segment
        slope_pct: (elevation_delta_m / distance_m) * 100, 0 for zero distance
        elevation_delta_m: Smoothed end elevation minus smoothed start elevation
        distance_m: Great-circle distance between start and end
    """

    start: SampledPoint
    end: SampledPoint
    slope_pct: float
    elevation_delta_m: float
    distance_m: float

    @property
    def label(self) -> str:
        """Human-readable slope and elevation change, e.g. '+4.2% (+8 m over 190 m)'."""
        decimals = SlopeConfig.LABEL_SLOPE_DECIMALS
        return f"{self.slope_pct:+.{decimals}f}% ({self.elevation_delta_m:+.0f} m over {self.distance_m:.0f} m)"

    def __repr__(self) -> str:
        return f"SlopeRecord({self.slope_pct:+.1f}%, {self.distance_m:.0f}m)"


@dataclass(frozen=True)
class SlopeOverlay:
    """A slope record styled for display."""

    record: SlopeRecord
    color: SlopeColor

    @property
    def label(self) -> str:
        return self.record.label

    @property
    def coordinates(self) -> list[tuple[float, float]]:
        """(lon, lat) pairs of the sub-segment."""
        return [self.record.start.point.lon_lat, self.record.end.point.lon_lat]
