"""Elevation tile data structures.

TileKey addresses a raster tile in the standard slippy-tile scheme.
ElevationTile holds one decoded raster together with its footprint in
Web-Mercator meters. Tiles are created once by the tile source and are
read-only afterwards.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass(frozen=True, order=True)
class TileKey:
    """Slippy-tile address (zoom, x, y).

    Example:
        key = TileKey(zoom=12, x=2200, y=1343)
    """

    zoom: int
    x: int
    y: int

    def __post_init__(self) -> None:
        n = 2**self.zoom
        if self.zoom < 0 or not (0 <= self.x < n and 0 <= self.y < n):
            raise ValueError(f"Invalid tile index {self.zoom}/{self.x}/{self.y}")

    def url_params(self) -> dict[str, int]:
        """Placeholders for URL templates such as '{z}/{x}/{y}.png'."""
        return {"z": self.zoom, "x": self.x, "y": self.y}

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


@dataclass(frozen=True)
class MercatorBounds:
    """Axis-aligned box in Web-Mercator meters (EPSG:3857)."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width_m(self) -> float:
        return self.max_x - self.min_x

    @property
    def height_m(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True, eq=False)
class ElevationTile:
    """A decoded elevation raster.

    Attributes:
        key: Tile address the raster was fetched for
        data: 2-D array of elevations in meters, row 0 is the northern edge
        bounds: Raster footprint in Web-Mercator meters
        nodata: Value marking missing elevation, if the source defines one
    """

    key: TileKey
    data: np.ndarray = field(repr=False)
    bounds: MercatorBounds
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        if self.data.ndim != 2 or self.data.size == 0:
            raise ValueError(f"Tile {self.key} needs a non-empty 2-D raster, got shape {self.data.shape}")
        self.data.setflags(write=False)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def value_at(self, px: int, py: int) -> Optional[float]:
        """Raster value at pixel (px, py), or None for nodata/NaN.

        Coordinates must already be bounds-checked.
        """
        value = float(self.data[py, px])
        if self.nodata is not None and value == self.nodata:
            return None
        if np.isnan(value):
            return None
        return value
