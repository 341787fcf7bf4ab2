"""Slope to color mapping for the rendering layer.

Slopes are clamped to a configurable range and mapped linearly onto a
two-channel gradient: cold (green) at the low end, hot (red) at the high end.
Ranges can be unsigned (color by steepness) or signed (uphill vs downhill).
"""

from dataclasses import dataclass

from cycleslope.constants import ColorConfig


@dataclass(frozen=True)
class SlopeColor:
    """Two-channel gradient value.

    Attributes:
        hot: Weight of the hot (red) channel in [0, 1]
        cold: Weight of the cold (green) channel in [0, 1], always 1 - hot
    """

    hot: float
    cold: float

    @property
    def rgb(self) -> tuple[int, int, int]:
        """(red, green, blue) in 0-255."""
        return (round(self.hot * 255), round(self.cold * 255), 0)

    @property
    def hex(self) -> str:
        """Hex color string, e.g. '#FF0000' for maximum hot."""
        r, g, b = self.rgb
        return f"#{r:02X}{g:02X}{b:02X}"


@dataclass(frozen=True)
class ColorScale:
    """Clamp range and direction for slope colors.

    Attributes:
        clamp_min: Slope (percent) mapped to fully cold
        clamp_max: Slope (percent) mapped to fully hot
        use_absolute: Color by |slope| (unsigned ranges)
        reverse: Swap hot and cold ends
    """

    clamp_min: float = ColorConfig.DEFAULT_RANGE[0]
    clamp_max: float = ColorConfig.DEFAULT_RANGE[1]
    use_absolute: bool = ColorConfig.DEFAULT_USE_ABSOLUTE
    reverse: bool = False

    def __post_init__(self) -> None:
        if self.clamp_min >= self.clamp_max:
            raise ValueError(f"clamp_min ({self.clamp_min}) must be below clamp_max ({self.clamp_max})")

    def color_for(self, slope_pct: float) -> SlopeColor:
        return color_for(
            slope_pct=slope_pct,
            clamp_min=self.clamp_min,
            clamp_max=self.clamp_max,
            use_absolute=self.use_absolute,
            reverse=self.reverse,
        )


UNSIGNED_GENTLE = ColorScale(*ColorConfig.UNSIGNED_GENTLE_RANGE, use_absolute=True)
UNSIGNED_STEEP = ColorScale(*ColorConfig.UNSIGNED_STEEP_RANGE, use_absolute=True)
SIGNED = ColorScale(*ColorConfig.SIGNED_RANGE, use_absolute=False)


def color_for(
    slope_pct: float,
    clamp_min: float,
    clamp_max: float,
    use_absolute: bool = False,
    reverse: bool = False,
) -> SlopeColor:
    """Map a slope to a gradient color.

    Args:
        slope_pct: Slope in percent
        clamp_min: Lower clamp bound (fully cold)
        clamp_max: Upper clamp bound (fully hot)
        use_absolute: Use |slope_pct| before clamping
        reverse: Map clamp_min to hot and clamp_max to cold

    Returns:
        SlopeColor with hot + cold == 1.
    """
    if clamp_min >= clamp_max:
        raise ValueError(f"clamp_min ({clamp_min}) must be below clamp_max ({clamp_max})")

    value = abs(slope_pct) if use_absolute else slope_pct
    clamped = max(clamp_min, min(clamp_max, value))
    t = (clamped - clamp_min) / (clamp_max - clamp_min)
    if reverse:
        t = 1.0 - t
    return SlopeColor(hot=t, cold=1.0 - t)
