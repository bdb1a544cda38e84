"""Visualization utilities for inspecting blob layouts and easing curves."""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon
from typing import Optional, Sequence, Tuple
import logging

from ..core.blob_mask import BlobMaskRenderer
from ..core.easing import Easing, get_easing
from ..core.patterns import BlobDescriptor

logger = logging.getLogger(__name__)


def _canvas_to_rgb_array(fig) -> np.ndarray:
    """Convert a matplotlib figure canvas to an RGB uint8 array."""
    fig.canvas.draw()
    rgba = np.asarray(fig.canvas.buffer_rgba())
    return rgba[..., :3].astype(np.uint8)


def visualize_blob_layout(
    blobs: Sequence[BlobDescriptor],
    width: int,
    height: int,
    renderer: Optional[BlobMaskRenderer] = None,
    progress_steps: Sequence[float] = (0.25, 0.5, 0.75, 1.0),
    title: str = "Blob Layout",
    save_path: Optional[str] = None,
    figsize: Tuple[int, int] = (12, 4),
) -> np.ndarray:
    """Draw blob outlines at several progress values side by side.

    Anchors are marked and coloured by delay so the stagger order is visible.

    Args:
        blobs: Blob set to draw
        width: Logical frame width in pixels
        height: Logical frame height in pixels
        renderer: Mask renderer providing easing, roughness and edge points
        progress_steps: Global progress values to draw, one panel each
        title: Overall figure title
        save_path: Optional path to save the figure
        figsize: Figure size in inches

    Returns:
        RGB image array (H, W, 3) as uint8
    """
    if not progress_steps:
        raise ValueError("At least one progress step is required")

    renderer = renderer or BlobMaskRenderer()
    fig, axes = plt.subplots(1, len(progress_steps), figsize=figsize, squeeze=False)

    xs = [blob.x * width for blob in blobs]
    ys = [blob.y * height for blob in blobs]
    delays = [blob.delay for blob in blobs]

    for ax, progress in zip(axes[0], progress_steps):
        shapes = renderer.assemble(blobs, progress, width, height)
        for shape in shapes:
            ax.add_patch(Polygon(shape.points, closed=True, alpha=0.35,
                                 facecolor='black', edgecolor='black', linewidth=0.5))

        ax.scatter(xs, ys, c=delays, cmap='plasma', s=12, zorder=3)
        ax.set_xlim(0, width)
        ax.set_ylim(height, 0)
        ax.set_aspect('equal')
        ax.set_title(f'progress {progress:.2f} ({len(shapes)} blobs)', fontsize=10)
        ax.set_xticks([])
        ax.set_yticks([])

    fig.suptitle(title, fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Blob layout visualization saved to {save_path}")

    rgb_array = _canvas_to_rgb_array(fig)
    plt.close(fig)
    return rgb_array


def visualize_easing_curves(
    kinds: Optional[Sequence[Easing]] = None,
    samples: int = 200,
    save_path: Optional[str] = None,
    figsize: Tuple[int, int] = (8, 6),
) -> np.ndarray:
    """Plot easing curves over t in [0, 1]."""
    kinds = list(kinds) if kinds else list(Easing)
    t = np.linspace(0.0, 1.0, samples)

    fig, ax = plt.subplots(figsize=figsize)
    for kind in kinds:
        curve = get_easing(kind)
        ax.plot(t, [curve(value) for value in t], label=Easing.parse(kind).value)

    ax.axhline(1.0, color='grey', linewidth=0.5, linestyle='--')
    ax.set_xlabel('t')
    ax.set_ylabel('eased value')
    ax.set_title('Easing Curves', fontsize=14, fontweight='bold')
    ax.legend(loc='lower right')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Easing curve plot saved to {save_path}")

    rgb_array = _canvas_to_rgb_array(fig)
    plt.close(fig)
    return rgb_array
