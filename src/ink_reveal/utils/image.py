"""Image loading, validation and placeholder utilities."""

from PIL import Image, ImageOps
import numpy as np
from pathlib import Path
from typing import Tuple
import logging

from ..errors import ImageLoadFailure

logger = logging.getLogger(__name__)


class ImageLoader:
    """Load a source image from disk for revealing."""

    SUPPORTED_FORMATS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}

    def __init__(self, path: Path, frame: int = 0):
        self.path = Path(path)
        self.frame = frame
        self._validate_format()
        self._validate_frame_number()

    def _validate_format(self) -> None:
        """Validate image format is supported."""
        if not self.path.exists():
            raise FileNotFoundError(f"Image file not found: {self.path}")

        if not self.path.is_file():
            raise ValueError(f"Path is not a file: {self.path}")

        suffix = self.path.suffix.lower()
        if suffix not in self.SUPPORTED_FORMATS:
            supported = ", ".join(sorted(self.SUPPORTED_FORMATS))
            raise ValueError(
                f"Unsupported format '{suffix}'. Supported formats: {supported}"
            )

    def _validate_frame_number(self) -> None:
        """Validate frame number is non-negative."""
        if self.frame < 0:
            raise ValueError(f"Frame number must be non-negative, got {self.frame}")

    def load(self) -> np.ndarray:
        """Load image as an RGBA numpy array."""
        try:
            with Image.open(self.path) as img:
                logger.debug(f"Loaded image: {img.format} {img.mode} {img.size}")

                # Verify the image is not corrupted
                img.verify()

            # Reopen for actual processing (verify() closes the image)
            with Image.open(self.path) as img:
                if getattr(img, "is_animated", False):
                    return self._extract_frame(img)
                return self._to_rgba(img)

        except ValueError:
            # Frame validation errors are caller mistakes, not load failures
            raise
        except (OSError, SyntaxError) as e:
            raise ImageLoadFailure(
                f"Failed to load image {self.path}: {e}", path=self.path, cause=e
            )

    def _extract_frame(self, img: Image.Image) -> np.ndarray:
        """Extract the requested frame from an animated image."""
        total_frames = getattr(img, "n_frames", 1)

        if self.frame >= total_frames:
            raise ValueError(
                f"Frame {self.frame} not available. Image has {total_frames} frames (0-{total_frames-1})"
            )

        try:
            img.seek(self.frame)
        except EOFError:
            raise ValueError(f"Cannot seek to frame {self.frame}")
        logger.debug(f"Extracted frame {self.frame}")
        return self._to_rgba(img)

    def _to_rgba(self, img: Image.Image) -> np.ndarray:
        """Convert PIL image to an RGBA numpy array, honouring EXIF orientation."""
        img = ImageOps.exif_transpose(img)

        original_mode = img.mode
        if img.mode != "RGBA":
            img = img.convert("RGBA")
            logger.debug(f"Converted image from {original_mode} to RGBA")

        array = np.array(img)

        if array.ndim != 3 or array.shape[2] != 4:
            raise ImageLoadFailure(
                f"Expected RGBA array, got shape {array.shape}", path=self.path
            )

        logger.debug(f"Converted to numpy array: {array.shape}")
        return array


def load_image(path: Path, frame: int = 0) -> Tuple[np.ndarray, Tuple[int, int]]:
    """Convenience function to load image and return array + (height, width)."""
    loader = ImageLoader(path, frame)
    array = loader.load()
    return array, array.shape[:2]


def validate_image_dimensions(image: np.ndarray) -> None:
    """Validate image meets size requirements."""
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected RGB or RGBA image, got shape {image.shape}")

    height, width = image.shape[:2]

    if width < 2 or height < 2:
        raise ValueError(f"Image too small: {width}×{height}. Minimum size: 2×2 pixels.")

    if width > 8192 or height > 8192:
        raise ValueError(
            f"Image too large: {width}×{height}. "
            f"Maximum size: 8192×8192 pixels. "
            f"Consider downscaling your image before processing."
        )

    logger.debug(f"Image dimensions validated: {width}×{height}")


def make_placeholder(image: np.ndarray, max_side: int = 32) -> np.ndarray:
    """Downscale an image into a tiny low-resolution placeholder."""
    if max_side < 1:
        raise ValueError(f"Placeholder size must be positive, got {max_side}")

    height, width = image.shape[:2]
    scale = min(1.0, max_side / max(width, height))
    size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))

    small = Image.fromarray(image).resize(size, Image.Resampling.BOX)
    logger.debug(f"Placeholder size: {size[0]}×{size[1]}")
    return np.array(small)
