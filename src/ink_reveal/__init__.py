"""InkReveal - Reveal images through organically growing ink blobs."""

__version__ = "0.1.0"
__author__ = "InkReveal Team"
__description__ = "Animate image reveals through noisy ink-blob clipping masks"

from .core.config import RevealConfiguration
from .core.driver import RevealDriver, RevealState
from .core.easing import Easing
from .core.patterns import BlobDescriptor, CustomBlob, RevealPattern, generate_blobs
from .core.render import HeadlessRenderer, save_animation
from .errors import ImageLoadFailure, InkRevealError, SurfaceUnavailable
from .utils.image import load_image

__all__ = [
    "RevealConfiguration",
    "RevealDriver",
    "RevealState",
    "Easing",
    "BlobDescriptor",
    "CustomBlob",
    "RevealPattern",
    "generate_blobs",
    "HeadlessRenderer",
    "save_animation",
    "InkRevealError",
    "ImageLoadFailure",
    "SurfaceUnavailable",
    "load_image",
]
