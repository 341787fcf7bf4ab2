"""Geodesic calculations on Earth's surface.

Provides the distance helpers used throughout the slope pipeline:
- Distance calculation (Haversine formula), scalar and vectorized
- Cumulative arc length along a polyline

All calculations use a spherical Earth approximation (R = 6,371 km).
Slope math never uses raw degree differences as distances.
"""

from math import atan2, cos, radians, sin, sqrt
from typing import Sequence

import numpy as np

from cycleslope.constants import GeoConfig

EARTH_RADIUS_M = GeoConfig.EARTH_RADIUS_M


class GeoCalculator:
    """Static methods for geodesic calculations on Earth's surface.

    Coordinates are in decimal degrees (WGS84).
    Distances are in meters.
    """

    EARTH_RADIUS_M = EARTH_RADIUS_M

    @staticmethod
    def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate great-circle distance between two points using Haversine formula.

        Args:
            lat1: Latitude of first point (decimal degrees)
            lon1: Longitude of first point (decimal degrees)
            lat2: Latitude of second point (decimal degrees)
            lon2: Longitude of second point (decimal degrees)

        Returns:
            Distance in meters.
        """
        dlat = radians(lat2 - lat1)
        dlon = radians(lon2 - lon1)
        a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
        return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))

    @staticmethod
    def cumulative_distances_m(lats: Sequence[float], lons: Sequence[float]) -> np.ndarray:
        """Cumulative great-circle distance at each vertex of a polyline.

        Same formula as haversine_distance_m, evaluated for all consecutive
        pairs at once.

        Args:
            lats: Vertex latitudes (decimal degrees)
            lons: Vertex longitudes (decimal degrees)

        Returns:
            Array of len(lats) distances in meters, starting at 0.0.
        """
        lat = np.radians(np.asarray(lats, dtype=float))
        lon = np.radians(np.asarray(lons, dtype=float))
        if lat.size == 0:
            return np.zeros(0)

        dlat = np.diff(lat)
        dlon = np.diff(lon)
        a = np.sin(dlat / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlon / 2) ** 2
        steps = EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
        return np.concatenate(([0.0], np.cumsum(steps)))

