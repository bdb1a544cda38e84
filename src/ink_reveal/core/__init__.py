"""Core reveal modules for InkReveal."""

from .blob_mask import BlobMaskRenderer, BlobShape, trace_blob_path
from .compositor import (
    FitMode,
    FrameCompositor,
    LayerStack,
    Surface,
    compute_draw_rect,
    compute_layer_rect,
)
from .config import RevealConfiguration
from .driver import RevealDriver, RevealState, RevealTimeline, run_to_completion
from .easing import Easing, ease, get_easing
from .patterns import BlobDescriptor, CustomBlob, PatternGenerator, RevealPattern, generate_blobs
from .scheduling import DelayScheduler, FrameScheduler, ManualScheduler

__all__ = [
    "BlobMaskRenderer",
    "BlobShape",
    "trace_blob_path",
    "FitMode",
    "FrameCompositor",
    "LayerStack",
    "Surface",
    "compute_draw_rect",
    "compute_layer_rect",
    "RevealConfiguration",
    "RevealDriver",
    "RevealState",
    "RevealTimeline",
    "run_to_completion",
    "Easing",
    "ease",
    "get_easing",
    "BlobDescriptor",
    "CustomBlob",
    "PatternGenerator",
    "RevealPattern",
    "generate_blobs",
    "DelayScheduler",
    "FrameScheduler",
    "ManualScheduler",
]
