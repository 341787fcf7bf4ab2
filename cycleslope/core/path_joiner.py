"""Endpoint-based joining of disconnected path segments.

Geometry sources deliver paths as many short segments (one per OSM way).
PathJoiner merges segments sharing endpoints into continuous paths:

1. Index every segment endpoint under a rounded-coordinate key
2. Walk segments in input order, skipping ones already consumed
3. From an unconsumed segment, repeatedly attach the first unconsumed segment
   touching the trailing point (forward if it starts there, reversed if it
   ends there, shared point kept once), then do the same at the leading point

At intersections of three or more segments the first eligible match in input
order wins. Output direction and composition therefore depend on input order;
this is expected, not graph-optimal matching.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from cycleslope.constants import JoinConfig
from cycleslope.model.geo_point import GeoPoint
from cycleslope.model.path_segment import JoinedPath, PathSegment

logger = logging.getLogger(__name__)

EndpointKey = tuple[float, float]


@dataclass(frozen=True)
class Endpoint:
    """One end of an input segment.

    Attributes:
        segment_index: Index of the segment in the input
        is_head: True for the segment's first point, False for its last
    """

    segment_index: int
    is_head: bool


class PathJoiner:
    """Merges segments that share endpoints into continuous paths.

    Example:
        joiner = PathJoiner()
        paths = joiner.join(segments)
    """

    def __init__(self, key_decimals: int = JoinConfig.KEY_DECIMALS):
        """Initialize joiner.

        Args:
            key_decimals: Decimal places endpoints are rounded to before matching
        """
        self.key_decimals = key_decimals

    def endpoint_key(self, point: GeoPoint) -> EndpointKey:
        """Rounded coordinate key; tolerates floating-point noise below the precision."""
        return (round(point.lat, self.key_decimals), round(point.lon, self.key_decimals))

    def build_index(self, segments: Sequence[Sequence[GeoPoint]]) -> dict[EndpointKey, list[Endpoint]]:
        """Map each endpoint key to the segment ends found there, in input order."""
        index: dict[EndpointKey, list[Endpoint]] = defaultdict(list)
        for i, points in enumerate(segments):
            index[self.endpoint_key(points[0])].append(Endpoint(segment_index=i, is_head=True))
            index[self.endpoint_key(points[-1])].append(Endpoint(segment_index=i, is_head=False))
        return index

    def join(self, segments: Sequence[Union[PathSegment, Sequence[GeoPoint]]]) -> list[JoinedPath]:
        """Join segments into continuous paths.

        Args:
            segments: Non-empty point sequences (or PathSegments) in input order

        Returns:
            One JoinedPath per chain found. Every input index appears in exactly one path.
        """
        point_lists = [tuple(s.points) if isinstance(s, PathSegment) else tuple(s) for s in segments]
        for i, points in enumerate(point_lists):
            if not points:
                raise ValueError(f"Segment {i} has no points")

        index = self.build_index(point_lists)
        visited: set[int] = set()
        joined: list[JoinedPath] = []

        for i, points in enumerate(point_lists):
            if i in visited:
                continue
            visited.add(i)
            path = list(points)
            order = [i]

            # Extend at the trailing point
            while (endpoint := self._next_unvisited(index, path[-1], visited)) is not None:
                visited.add(endpoint.segment_index)
                other = point_lists[endpoint.segment_index]
                path.extend(other[1:] if endpoint.is_head else other[-2::-1])
                order.append(endpoint.segment_index)

            # Extend at the leading point
            while (endpoint := self._next_unvisited(index, path[0], visited)) is not None:
                visited.add(endpoint.segment_index)
                other = point_lists[endpoint.segment_index]
                path[:0] = other[:-1] if not endpoint.is_head else other[:0:-1]
                order.insert(0, endpoint.segment_index)

            joined.append(JoinedPath(points=tuple(path), segment_indices=tuple(order)))

        logger.debug(f"Joined {len(point_lists)} segments into {len(joined)} paths")
        return joined

    def _next_unvisited(
        self,
        index: dict[EndpointKey, list[Endpoint]],
        point: GeoPoint,
        visited: set[int],
    ) -> Optional[Endpoint]:
        """First endpoint at this location whose segment is not consumed yet."""
        for endpoint in index.get(self.endpoint_key(point), []):
            if endpoint.segment_index not in visited:
                return endpoint
        return None
