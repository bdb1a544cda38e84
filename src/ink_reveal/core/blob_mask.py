"""Blob edge tracing and per-frame mask assembly.

Path tracing and mask assembly are pure geometry and never touch a drawing
surface. `rasterize_shapes` turns the assembled polygons into a boolean
coverage mask; only the compositor calls it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from skimage.draw import polygon as draw_polygon

from .easing import Easing, get_easing
from .patterns import BlobDescriptor

logger = logging.getLogger(__name__)

# Edge noise harmonics: (angular frequency, seed multiplier, amplitude)
NOISE_HARMONICS = (
    (3, 1.0, 0.18),
    (7, 2.1, 0.09),
    (13, 3.7, 0.04),
)
NOISE_SMOOTHING = 0.6
RADIUS_SCALE = 1.2
MAX_RADIUS_FRACTION = 0.5
MIN_RASTER_RADIUS = 1.0


def trace_blob_path(
    center: Tuple[float, float],
    base_radius: float,
    seed: float,
    blob_progress: float,
    roughness: float,
    point_count: int,
) -> np.ndarray:
    """Trace the closed noisy outline of one blob.

    Returns an array of shape (point_count + 1, 2) holding (x, y) vertices in
    angular order. The first and last vertex coincide so the loop is closed.
    The noise fades by up to 60% as the blob matures.
    """
    if point_count < 3:
        raise ValueError(f"point_count must be at least 3, got {point_count}")

    angles = np.linspace(0.0, 2 * np.pi, point_count + 1)
    noise = np.zeros_like(angles)
    for frequency, seed_scale, amplitude in NOISE_HARMONICS:
        noise += np.sin(angles * frequency + seed * seed_scale) * amplitude * roughness

    noise_amount = 1 - blob_progress * NOISE_SMOOTHING
    radii = base_radius * (1 + noise * noise_amount)

    cx, cy = center
    points = np.empty((point_count + 1, 2), dtype=float)
    points[:, 0] = cx + np.cos(angles) * radii
    points[:, 1] = cy + np.sin(angles) * radii
    # linspace endpoints differ by rounding only; make the closure exact
    points[-1] = points[0]
    return points


def delayed_progress(delay: float, global_progress: float) -> float:
    """Progress of a blob's own growth window, clamped at 0."""
    if delay >= 1:
        return 1.0 if global_progress >= 1 else 0.0
    return max(0.0, (global_progress - delay) / (1 - delay))


def blob_progress(
    blob: BlobDescriptor,
    global_progress: float,
    easing: Union[str, Easing] = Easing.EASE_OUT,
) -> float:
    """Eased growth of `blob` at the given overall progress."""
    return get_easing(easing)(delayed_progress(blob.delay, global_progress))


def blob_radius(
    blob: BlobDescriptor,
    eased_progress: float,
    width: float,
    height: float,
) -> float:
    """Pixel radius for an eased progress, capped at half the larger side.

    Oversized ``base_size`` values are capped, not rejected.
    """
    max_dimension = max(width, height)
    target = eased_progress * max_dimension * blob.base_size * RADIUS_SCALE
    return min(target, max_dimension * MAX_RADIUS_FRACTION)


@dataclass
class BlobShape:
    """Geometry of one visible blob for a single frame."""

    index: int
    center: Tuple[float, float]
    radius: float
    progress: float
    points: np.ndarray


class BlobMaskRenderer:
    """Assemble the per-frame union of blob polygons."""

    def __init__(
        self,
        roughness: float = 0.3,
        point_count: int = 60,
        easing: Union[str, Easing] = Easing.EASE_OUT,
    ):
        if roughness < 0:
            raise ValueError(f"Roughness must be non-negative, got {roughness}")
        if point_count < 3:
            raise ValueError(f"point_count must be at least 3, got {point_count}")

        self.roughness = roughness
        self.point_count = point_count
        self.easing = Easing.parse(easing)
        self._ease = get_easing(self.easing)

    def assemble(
        self,
        blobs: Sequence[BlobDescriptor],
        global_progress: float,
        width: float,
        height: float,
    ) -> List[BlobShape]:
        """Return the shapes visible at `global_progress` in logical pixels.

        Blobs that have not started growing, or whose radius is at most one
        pixel, are left out.
        """
        shapes = []
        for index, blob in enumerate(blobs):
            eased = self._ease(delayed_progress(blob.delay, global_progress))
            if eased <= 0:
                continue

            radius = blob_radius(blob, eased, width, height)
            if radius <= MIN_RASTER_RADIUS:
                continue

            center = (blob.x * width, blob.y * height)
            points = trace_blob_path(
                center, radius, blob.seed, eased, self.roughness, self.point_count
            )
            shapes.append(BlobShape(index, center, radius, eased, points))

        return shapes

    def radii(
        self,
        blobs: Sequence[BlobDescriptor],
        global_progress: float,
        width: float,
        height: float,
    ) -> np.ndarray:
        """Capped radius of every blob (0 for blobs not yet growing)."""
        values = np.zeros(len(blobs), dtype=float)
        for index, blob in enumerate(blobs):
            eased = self._ease(delayed_progress(blob.delay, global_progress))
            if eased > 0:
                values[index] = blob_radius(blob, eased, width, height)
        return values

    def render_mask(
        self,
        blobs: Sequence[BlobDescriptor],
        global_progress: float,
        width: int,
        height: int,
        scale: float = 1.0,
    ) -> np.ndarray:
        """Assemble and rasterize in one step (mostly for previews and tests)."""
        shapes = self.assemble(blobs, global_progress, width, height)
        backing = (int(round(height * scale)), int(round(width * scale)))
        return rasterize_shapes(shapes, backing, scale)


def rasterize_shapes(
    shapes: Sequence[BlobShape],
    shape: Tuple[int, int],
    scale: float = 1.0,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Union blob polygons into a boolean (rows, cols) coverage mask.

    Vertices are in logical pixels and are multiplied by `scale` to reach the
    backing resolution.
    """
    mask = out if out is not None else np.zeros(shape, dtype=bool)
    if out is not None:
        mask[...] = False

    for blob_shape in shapes:
        rows = blob_shape.points[:, 1] * scale
        cols = blob_shape.points[:, 0] * scale
        rr, cc = draw_polygon(rows, cols, shape=mask.shape)
        mask[rr, cc] = True

    return mask
