"""Mathematical utilities for reveal geometry."""

import math
from typing import Tuple


def clamp_value(value: float, min_val: float, max_val: float) -> float:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def polar_offset(
    cx: float, cy: float, angle: float, distance: float
) -> Tuple[float, float]:
    """Return the point at `distance` from (cx, cy) along `angle` (radians)."""
    return cx + math.cos(angle) * distance, cy + math.sin(angle) * distance


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Parse '#rgb' or '#rrggbb' into an RGB tuple."""
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    try:
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color: {value!r}")
