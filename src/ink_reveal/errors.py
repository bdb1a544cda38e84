"""Exception types raised and handled by InkReveal."""

from pathlib import Path
from typing import Optional, Union


class InkRevealError(Exception):
    """Base class for InkReveal errors."""


class ImageLoadFailure(InkRevealError):
    """The source image could not be fetched or decoded."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.path = path
        self.cause = cause


class SurfaceUnavailable(InkRevealError):
    """The drawing surface is not mounted or has no usable size yet."""
