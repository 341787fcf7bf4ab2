"""Cycle Slope - slope overlays for cycle paths on real terrain.

Turns raw path geometry (e.g. OpenStreetMap cycleways) and tiled elevation
rasters into slope-annotated sub-segments and continuous merged paths:
- Web-Mercator and slippy-tile coordinate math
- Lazily fetched, LRU-bounded elevation tile cache
- Arc-length resampling, elevation smoothing and slope computation
- Endpoint-based joining of disconnected segments

Modules:
    core: Algorithms (coordinates, tiles, sampling, slopes, joining, colors)
    model: Data structures (GeoPoint, TileKey, PathSegment, SlopeRecord, issues)
    sources: Path geometry queries (Overpass)
    pipeline: SlopePipeline, the single entry point for the map layer

Example:
    from cycleslope.pipeline import SlopePipeline
    from cycleslope.model import BoundingBox
"""
