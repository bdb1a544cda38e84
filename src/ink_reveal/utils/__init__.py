"""Utility modules for InkReveal."""

from .image import load_image, ImageLoader, validate_image_dimensions, make_placeholder
from .math import clamp_value, polar_offset, parse_hex_color
from .profiler import PerformanceProfiler

__all__ = [
    "load_image",
    "ImageLoader",
    "validate_image_dimensions",
    "make_placeholder",
    "clamp_value",
    "polar_offset",
    "parse_hex_color",
    "PerformanceProfiler",
]
