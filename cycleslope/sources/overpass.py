"""Path geometry from the Overpass API.

Queries OpenStreetMap ways matching a tag filter inside a bounding box and
returns their geometry as raw segments ({"lat", "lon"} records), ready for
SlopePipeline.on_viewport_or_paths_changed(). Point features such as bicycle
parking come back as GeoPoints.
"""

import logging
from typing import Any, Optional, Protocol

import requests

from cycleslope.constants import OverpassConfig
from cycleslope.model.geo_point import BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

RawSegment = list[dict[str, Any]]


class PathQueryError(Exception):
    """Path geometry could not be fetched or parsed."""


class PathQuery(Protocol):
    """Anything that returns raw path segments for a bounding box."""

    def fetch_segments(self, bbox: BoundingBox) -> list[RawSegment]:
        """Return raw segments inside bbox, raising PathQueryError on failure."""
        ...


class OverpassPathQuery:
    """Fetches way geometries from an Overpass endpoint.

    Example:
        query = OverpassPathQuery()
        segments = query.fetch_segments(BoundingBox(south=52.50, west=13.38, north=52.53, east=13.42))
    """

    def __init__(
        self,
        endpoint: str = OverpassConfig.ENDPOINT,
        tag_filter: str = OverpassConfig.DEFAULT_TAG_FILTER,
        timeout_s: float = OverpassConfig.REQUEST_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        """Initialize query.

        Args:
            endpoint: Overpass interpreter URL
            tag_filter: Overpass tag filter, e.g. '"highway"="cycleway"'
            timeout_s: Request timeout in seconds
            session: requests session (created if not provided)
        """
        self.endpoint = endpoint
        self.tag_filter = tag_filter
        self.timeout_s = timeout_s
        self._session = session if session is not None else requests.Session()

    def build_query(self, bbox: BoundingBox) -> str:
        """Overpass QL for ways matching the tag filter, with inline geometry."""
        return f"[out:json];way[{self.tag_filter}]({bbox.overpass_filter});out geom;"

    @staticmethod
    def build_node_query(bbox: BoundingBox, tag_filter: str = OverpassConfig.PARKING_TAG_FILTER) -> str:
        """Overpass QL for nodes matching a tag filter."""
        return f"[out:json];node[{tag_filter}]({bbox.overpass_filter});out;"

    def _post(self, query: str) -> dict[str, Any]:
        """Run one Overpass query. Single attempt, no retries.

        Raises:
            PathQueryError: On transport errors, non-2xx responses or invalid JSON.
        """
        try:
            response = self._session.post(self.endpoint, data={"data": query}, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PathQueryError(f"Overpass request failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise PathQueryError(f"Overpass returned invalid JSON: {e}") from e

    def fetch_segments(self, bbox: BoundingBox) -> list[RawSegment]:
        """Fetch way geometries inside a bounding box.

        Raises:
            PathQueryError: On transport errors, non-2xx responses or invalid JSON.
        """
        logger.info(f"Querying Overpass for {self.tag_filter} in {bbox.overpass_filter}")
        segments = self.parse_segments(self._post(self.build_query(bbox)))
        logger.info(f"Overpass returned {len(segments)} segments")
        return segments

    def fetch_nodes(self, bbox: BoundingBox, tag_filter: str = OverpassConfig.PARKING_TAG_FILTER) -> list[GeoPoint]:
        """Fetch point features (bicycle parking by default) inside a bounding box.

        Raises:
            PathQueryError: On transport errors, non-2xx responses or invalid JSON.
        """
        logger.info(f"Querying Overpass for nodes {tag_filter} in {bbox.overpass_filter}")
        nodes = self.parse_nodes(self._post(self.build_node_query(bbox, tag_filter)))
        logger.info(f"Overpass returned {len(nodes)} nodes")
        return nodes

    @staticmethod
    def parse_segments(payload: dict[str, Any]) -> list[RawSegment]:
        """Extract way geometries from an Overpass JSON response.

        Elements without geometry (nodes, relations, ways outside 'out geom') are skipped.
        """
        segments: list[RawSegment] = []
        for element in payload.get("elements", []):
            if element.get("type") != "way":
                continue
            geometry = element.get("geometry")
            if not geometry:
                continue
            segments.append([{"lat": p["lat"], "lon": p["lon"]} for p in geometry])
        return segments

    @staticmethod
    def parse_nodes(payload: dict[str, Any]) -> list[GeoPoint]:
        """Extract node coordinates from an Overpass JSON response.

        Non-node elements and nodes without coordinates are skipped.
        """
        nodes: list[GeoPoint] = []
        for element in payload.get("elements", []):
            if element.get("type") != "node" or "lat" not in element or "lon" not in element:
                continue
            nodes.append(GeoPoint(lat=float(element["lat"]), lon=float(element["lon"])))
        return nodes
