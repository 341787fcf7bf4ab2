"""Compute slope overlays for all cycleways in a bounding box and save them as GeoJSON.

Developer utility: fetches cycleway geometry from Overpass, runs the slope
pipeline against AWS terrain tiles and writes a FeatureCollection that any
GeoJSON viewer can display (color property per sub-segment).

With --parking, bicycle parking nodes are added as Point features.

Run: python scripts/slope_report.py --bbox 52.50 13.38 52.53 13.42 --parking
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from shapely.geometry import Point, mapping

from cycleslope.constants import OUTPUT_DIR, SamplingConfig, TileConfig
from cycleslope.core.color_mapper import SIGNED, UNSIGNED_STEEP
from cycleslope.model.geo_point import BoundingBox, GeoPoint
from cycleslope.pipeline import PipelineConfig, SlopePipeline
from cycleslope.sources.overpass import OverpassPathQuery, PathQueryError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--bbox", nargs=4, type=float, required=True, metavar=("SOUTH", "WEST", "NORTH", "EAST"))
    parser.add_argument("--interval", type=float, default=SamplingConfig.INTERVAL_M, help="Sample spacing (m)")
    parser.add_argument("--zoom", type=int, default=TileConfig.DEFAULT_ZOOM, help="Elevation tile zoom")
    parser.add_argument("--signed", action="store_true", help="Color uphill/downhill separately (-10%% to 10%%)")
    parser.add_argument("--parking", action="store_true", help="Add bicycle parking nodes as Point features")
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR / "slopes.geojson")
    return parser.parse_args()


def parking_features(nodes: list[GeoPoint]) -> list[dict[str, Any]]:
    return [
        {"type": "Feature", "geometry": mapping(Point(node.lon_lat)), "properties": {"kind": "bicycle_parking"}}
        for node in nodes
    ]


def main() -> None:
    args = parse_args()
    bbox = BoundingBox(*args.bbox)
    config = PipelineConfig(
        sample_interval_m=args.interval,
        zoom=args.zoom,
        color_scale=SIGNED if args.signed else UNSIGNED_STEEP,
    )

    query = OverpassPathQuery()
    with SlopePipeline(config=config, path_query=query) as pipeline:
        result = pipeline.refresh(bbox)

    collection = result.to_feature_collection()
    if args.parking:
        try:
            nodes = query.fetch_nodes(bbox)
        except PathQueryError as e:
            logger.warning(f"Skipping bicycle parking: {e}")
        else:
            collection["features"].extend(parking_features(nodes))
            logger.info(f"Added {len(nodes)} bicycle parking nodes")

    records = result.records
    if records:
        steepest = max(records, key=lambda r: abs(r.slope_pct))
        logger.info(f"Steepest sub-segment: {steepest.label}")
    for issue in result.issues:
        logger.warning(issue.message)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        json.dump(collection, f)
    logger.info(f"Saved {len(records)} slope records for {len(result.paths)} paths to {args.output}")


if __name__ == "__main__":
    main()
