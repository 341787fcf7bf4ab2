"""Core algorithms for slope analysis.

This module provides the numerical backbone of the pipeline:
- GeoCalculator: Great-circle distances
- ColorScale / color_for: Slope to color mapping
- CoordinateTransform: Web-Mercator projection, tile indexing, pixel addressing
- TileCache / HttpTileSource: Shared LRU cache of decoded elevation tiles
- ElevationSampler: Elevation lookup at arbitrary coordinates
- PathResampler: Evenly spaced samples along a path
- SlopeCalculator: Smoothed per-sub-segment slopes
- PathJoiner: Merging of segments that share endpoints
"""

from cycleslope.core.color_mapper import ColorScale, SlopeColor, color_for
from cycleslope.core.geo_calculator import GeoCalculator

# The remaining classes import cycleslope.model, which imports GeoCalculator from here.
# Import them directly, e.g.: from cycleslope.core.tile_cache import TileCache

__all__ = [
    # Geo calculator
    "GeoCalculator",
    # Colors
    "ColorScale",
    "SlopeColor",
    "color_for",
]
