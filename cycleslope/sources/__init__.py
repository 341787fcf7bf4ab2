"""External path geometry sources.

The slope pipeline only needs a PathQuery: something that returns raw segments
for a bounding box. OverpassPathQuery is the OpenStreetMap implementation.
"""

from cycleslope.sources.overpass import OverpassPathQuery, PathQuery, PathQueryError

__all__ = [
    "PathQuery",
    "PathQueryError",
    "OverpassPathQuery",
]
