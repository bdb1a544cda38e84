"""Frame compositing: surface sizing, fit modes, clipping and layering."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image
from scipy.ndimage import gaussian_filter

from .blob_mask import BlobMaskRenderer, rasterize_shapes
from .patterns import BlobDescriptor
from ..errors import SurfaceUnavailable
from ..utils.math import clamp_value, parse_hex_color

logger = logging.getLogger(__name__)

ImageSource = Union[np.ndarray, Image.Image]

PLACEHOLDER_SCALE = 1.1


class FitMode(str, Enum):
    """How the source image is scaled into the surface rectangle."""

    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    NONE = "none"
    SCALE_DOWN = "scale-down"


@dataclass(frozen=True)
class DrawRect:
    """Placement of the image in surface coordinates."""

    x: float
    y: float
    width: float
    height: float

    def scaled(self, factor: float) -> "DrawRect":
        return DrawRect(
            self.x * factor, self.y * factor, self.width * factor, self.height * factor
        )


def compute_draw_rect(
    surface_width: float,
    surface_height: float,
    image_width: float,
    image_height: float,
    fit_mode: Union[str, FitMode] = FitMode.COVER,
) -> DrawRect:
    """Compute where the image lands on the surface for a fit mode.

    ``cover`` fills the surface and crops the overflow, ``contain`` fits the
    whole image centred inside it, and every other mode stretches the image
    to the exact surface size.
    """
    if surface_width <= 0 or surface_height <= 0:
        raise ValueError(f"Invalid surface size: {surface_width}x{surface_height}")
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size: {image_width}x{image_height}")

    fit_mode = FitMode(fit_mode)
    image_ratio = image_width / image_height
    surface_ratio = surface_width / surface_height

    if fit_mode is FitMode.COVER:
        if image_ratio > surface_ratio:
            draw_height = surface_height
            draw_width = surface_height * image_ratio
            return DrawRect((surface_width - draw_width) / 2, 0.0, draw_width, draw_height)
        draw_width = surface_width
        draw_height = surface_width / image_ratio
        return DrawRect(0.0, (surface_height - draw_height) / 2, draw_width, draw_height)

    if fit_mode is FitMode.CONTAIN:
        if image_ratio > surface_ratio:
            draw_width = surface_width
            draw_height = surface_width / image_ratio
            return DrawRect(0.0, (surface_height - draw_height) / 2, draw_width, draw_height)
        draw_height = surface_height
        draw_width = surface_height * image_ratio
        return DrawRect((surface_width - draw_width) / 2, 0.0, draw_width, draw_height)

    return DrawRect(0.0, 0.0, float(surface_width), float(surface_height))


def compute_layer_rect(
    surface_width: float,
    surface_height: float,
    image_width: float,
    image_height: float,
    fit_mode: Union[str, FitMode] = FitMode.COVER,
) -> DrawRect:
    """Placement of an unmasked image layer, following CSS object-fit.

    Unlike the masked canvas, ``none`` keeps the natural size centred and
    ``scale-down`` uses whichever of ``none`` and ``contain`` is smaller.
    """
    fit_mode = FitMode(fit_mode)
    if fit_mode not in (FitMode.NONE, FitMode.SCALE_DOWN):
        return compute_draw_rect(
            surface_width, surface_height, image_width, image_height, fit_mode
        )

    if fit_mode is FitMode.SCALE_DOWN and (
        image_width > surface_width or image_height > surface_height
    ):
        return compute_draw_rect(
            surface_width, surface_height, image_width, image_height, FitMode.CONTAIN
        )

    if surface_width <= 0 or surface_height <= 0:
        raise ValueError(f"Invalid surface size: {surface_width}x{surface_height}")
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size: {image_width}x{image_height}")
    return DrawRect(
        (surface_width - image_width) / 2,
        (surface_height - image_height) / 2,
        float(image_width),
        float(image_height),
    )


def to_rgba_image(source: ImageSource) -> Image.Image:
    """Normalize an array or PIL image to an RGBA PIL image."""
    if isinstance(source, Image.Image):
        return source if source.mode == "RGBA" else source.convert("RGBA")

    array = np.asarray(source)
    if array.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image array, got {array.dtype}")
    if array.ndim == 2 or (array.ndim == 3 and array.shape[2] in (3, 4)):
        return Image.fromarray(array).convert("RGBA")
    raise ValueError(f"Unsupported image array shape: {array.shape}")


def place_image(
    image: Image.Image, rect: DrawRect, size: Tuple[int, int]
) -> np.ndarray:
    """Resize `image` into `rect` on a transparent (width, height) canvas."""
    draw_width = max(1, int(round(rect.width)))
    draw_height = max(1, int(round(rect.height)))
    resized = image.resize((draw_width, draw_height), Image.Resampling.BILINEAR)

    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(resized, (int(round(rect.x)), int(round(rect.y))))
    return np.asarray(canvas)


class Surface:
    """Drawing target with a logical size and a device-pixel backing buffer.

    Geometry is expressed in logical pixels; the backing buffer holds
    ``device_pixel_ratio`` times as many pixels along each axis.
    """

    def __init__(self, width: int = 0, height: int = 0, device_pixel_ratio: float = 1.0):
        if device_pixel_ratio <= 0:
            raise ValueError(f"Device pixel ratio must be positive, got {device_pixel_ratio}")

        self.device_pixel_ratio = device_pixel_ratio
        self.width = 0
        self.height = 0
        self.pixels = np.zeros((0, 0, 4), dtype=np.uint8)
        self.mask = np.zeros((0, 0), dtype=bool)
        if width > 0 and height > 0:
            self.resize(width, height)

    @property
    def is_ready(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def backing_size(self) -> Tuple[int, int]:
        """Backing buffer size as (width, height)."""
        return (
            int(round(self.width * self.device_pixel_ratio)),
            int(round(self.height * self.device_pixel_ratio)),
        )

    def resize(self, width: int, height: int) -> bool:
        """Match the logical size; reallocate only if the backing size changes."""
        if width <= 0 or height <= 0:
            raise SurfaceUnavailable(f"Surface has no usable size: {width}x{height}")

        self.width = int(width)
        self.height = int(height)
        backing_width, backing_height = self.backing_size
        if self.pixels.shape[:2] == (backing_height, backing_width):
            return False

        self.pixels = np.zeros((backing_height, backing_width, 4), dtype=np.uint8)
        self.mask = np.zeros((backing_height, backing_width), dtype=bool)
        logger.debug(
            f"Resized surface to {self.width}x{self.height} "
            f"(backing {backing_width}x{backing_height})"
        )
        return True

    def clear(self) -> None:
        self.pixels[...] = 0
        self.mask[...] = False

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)


class FrameCompositor:
    """Draw the source image through the union of blob shapes."""

    def __init__(
        self,
        mask_renderer: BlobMaskRenderer,
        fit_mode: Union[str, FitMode] = FitMode.COVER,
        source: Optional[ImageSource] = None,
    ):
        self.mask_renderer = mask_renderer
        self.fit_mode = FitMode(fit_mode)
        self.source: Optional[Image.Image] = None
        self._fitted_cache: Dict[Tuple, np.ndarray] = {}
        if source is not None:
            self.set_source(source)

    @property
    def has_source(self) -> bool:
        return self.source is not None

    def set_source(self, source: Optional[ImageSource]) -> None:
        self.source = to_rgba_image(source) if source is not None else None
        self._fitted_cache.clear()

    def set_fit_mode(self, fit_mode: Union[str, FitMode]) -> None:
        fit_mode = FitMode(fit_mode)
        if fit_mode is not self.fit_mode:
            self.fit_mode = fit_mode
            self._fitted_cache.clear()

    def fitted_image(self, surface: Surface) -> np.ndarray:
        """Source image placed on a backing-resolution RGBA canvas."""
        if self.source is None:
            raise SurfaceUnavailable("No source image to draw")

        backing = surface.backing_size
        key = (backing, surface.width, surface.height, self.fit_mode)
        cached = self._fitted_cache.get(key)
        if cached is not None:
            return cached

        rect = compute_draw_rect(
            surface.width, surface.height, self.source.width, self.source.height, self.fit_mode
        ).scaled(surface.device_pixel_ratio)
        fitted = place_image(self.source, rect, backing)

        # Only the current surface size is worth keeping
        self._fitted_cache = {key: fitted}
        return fitted

    def draw_frame(
        self,
        surface: Surface,
        blobs: Sequence[BlobDescriptor],
        progress: float,
    ) -> np.ndarray:
        """Render one frame of the masked image into `surface`.

        Returns the boolean coverage mask at backing resolution. Content
        outside the mask is fully transparent.
        """
        if not surface.is_ready:
            raise SurfaceUnavailable("Surface has not been sized")

        fitted = self.fitted_image(surface)
        shapes = self.mask_renderer.assemble(blobs, progress, surface.width, surface.height)
        rasterize_shapes(
            shapes, surface.mask.shape, surface.device_pixel_ratio, out=surface.mask
        )

        surface.pixels[...] = 0
        surface.pixels[surface.mask] = fitted[surface.mask]
        return surface.mask


class LayerStack:
    """Compose the visible frame: background, placeholder, canvas, overlay."""

    def __init__(
        self,
        final_image: ImageSource,
        placeholder: Optional[ImageSource] = None,
        fit_mode: Union[str, FitMode] = FitMode.COVER,
        background_color: str = "#e5e7eb",
        placeholder_blur: float = 20.0,
    ):
        if placeholder_blur < 0:
            raise ValueError(f"Placeholder blur must be non-negative, got {placeholder_blur}")

        self.final_image = to_rgba_image(final_image)
        self.placeholder = to_rgba_image(placeholder) if placeholder is not None else None
        self.fit_mode = FitMode(fit_mode)
        self.background = np.array(parse_hex_color(background_color), dtype=float)
        self.placeholder_blur = placeholder_blur
        self._cache: Dict[Tuple, np.ndarray] = {}

    def _layer(self, name: str, surface: Surface) -> np.ndarray:
        key = (name, surface.backing_size, surface.width, surface.height)
        if key in self._cache:
            return self._cache[key]

        ratio = surface.device_pixel_ratio
        if name == "overlay":
            layer = place_image(
                self.final_image, self._layer_rect(surface).scaled(ratio), surface.backing_size
            )
        else:
            layer = self._placeholder_layer(surface)

        self._cache[key] = layer
        return layer

    def _layer_rect(self, surface: Surface) -> DrawRect:
        # The placeholder stands in for the final image, so both share its natural size
        image = self.final_image
        return compute_layer_rect(
            surface.width, surface.height, image.width, image.height, self.fit_mode
        )

    def _placeholder_layer(self, surface: Surface) -> np.ndarray:
        image = self.placeholder
        ratio = surface.device_pixel_ratio
        rect = self._layer_rect(surface)
        # Enlarge about the centre so blurred edges never show the background
        grow_w = rect.width * (PLACEHOLDER_SCALE - 1)
        grow_h = rect.height * (PLACEHOLDER_SCALE - 1)
        rect = DrawRect(
            rect.x - grow_w / 2,
            rect.y - grow_h / 2,
            rect.width + grow_w,
            rect.height + grow_h,
        )
        layer = place_image(image, rect.scaled(ratio), surface.backing_size).astype(float)

        sigma = self.placeholder_blur * ratio
        if sigma > 0:
            for channel in range(layer.shape[2]):
                layer[:, :, channel] = gaussian_filter(layer[:, :, channel], sigma=sigma)
        return np.clip(np.round(layer), 0, 255).astype(np.uint8)

    def compose(
        self,
        surface: Surface,
        overlay_opacity: float,
        placeholder_visible: bool = True,
        canvas_visible: bool = True,
    ) -> Image.Image:
        """Flatten all layers into an RGB image at backing resolution."""
        if not surface.is_ready:
            raise SurfaceUnavailable("Surface has not been sized")

        backing_width, backing_height = surface.backing_size
        frame = np.empty((backing_height, backing_width, 3), dtype=float)
        frame[...] = self.background

        if placeholder_visible and self.placeholder is not None:
            frame = _blend(frame, self._layer("placeholder", surface), 1.0)

        if canvas_visible:
            frame = _blend(frame, surface.pixels, 1.0)

        opacity = clamp_value(overlay_opacity, 0.0, 1.0)
        if opacity > 0:
            frame = _blend(frame, self._layer("overlay", surface), opacity)

        return Image.fromarray(np.clip(np.round(frame), 0, 255).astype(np.uint8))


def _blend(base: np.ndarray, layer: np.ndarray, opacity: float) -> np.ndarray:
    """Source-over blend of an RGBA uint8 layer onto an RGB float frame."""
    alpha = layer[:, :, 3:4].astype(float) / 255.0 * opacity
    return base * (1 - alpha) + layer[:, :, :3].astype(float) * alpha
