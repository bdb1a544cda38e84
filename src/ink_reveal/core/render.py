"""Headless reveal rendering to animated GIF or PNG."""

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image

from .compositor import ImageSource, LayerStack, to_rgba_image
from .config import RevealConfiguration
from .driver import RevealDriver, RevealState, run_to_completion
from .scheduling import ManualScheduler
from ..utils.image import make_placeholder
from ..utils.profiler import PerformanceProfiler

logger = logging.getLogger(__name__)

ANIMATION_FORMATS = {".gif", ".png", ".apng"}


class HeadlessRenderer:
    """Drive a reveal at a fixed frame rate and collect the visible frames."""

    def __init__(
        self,
        image: ImageSource,
        config: Optional[RevealConfiguration] = None,
        size: Optional[Tuple[int, int]] = None,
        fps: float = 30.0,
        placeholder: Optional[ImageSource] = None,
        rng: Optional[np.random.Generator] = None,
        profiler: Optional[PerformanceProfiler] = None,
    ):
        if fps <= 0:
            raise ValueError(f"FPS must be positive, got {fps}")

        self.image = to_rgba_image(image)
        self.config = config or RevealConfiguration()
        self.size = size or self.image.size
        if self.size[0] <= 0 or self.size[1] <= 0:
            raise ValueError(f"Invalid output size: {self.size[0]}x{self.size[1]}")
        self.fps = fps
        self.profiler = profiler

        if placeholder is None:
            placeholder = make_placeholder(np.asarray(self.image))
        self.layers = LayerStack(
            self.image,
            placeholder=placeholder,
            fit_mode=self.config.fit_mode,
            background_color=self.config.background_color,
            placeholder_blur=self.config.placeholder_blur,
        )

        self.scheduler = ManualScheduler()
        self.progress_log: List[float] = []
        self.driver = RevealDriver(
            self.config,
            frame_scheduler=self.scheduler,
            surface_size_provider=lambda: self.size,
            rng=rng,
            on_progress=self.progress_log.append,
        )

    @property
    def frame_interval_ms(self) -> float:
        return 1000.0 / self.fps

    def _measure(self, name: str):
        if self.profiler is None:
            return nullcontext()
        return self.profiler.measure(name)

    def compose(self) -> Image.Image:
        """Flatten the driver's current state into one visible frame."""
        with self._measure("compose"):
            return self.layers.compose(
                self.driver.surface,
                self.driver.overlay_opacity,
                placeholder_visible=self.driver.placeholder_visible,
                canvas_visible=not self.config.disable_animation,
            )

    def render(
        self, on_frame: Optional[Callable[[int, float], None]] = None
    ) -> List[Image.Image]:
        """Run the reveal to completion and return every composed frame.

        Calling it again replays the reveal with a freshly generated layout.
        """
        frames: List[Image.Image] = []
        driver = self.driver
        if driver.state is not RevealState.IDLE:
            # a finished or interrupted reveal plays again from the start
            driver.reset()
            self.progress_log.clear()
        driver.surface.resize(*self.size)

        def capture(current: RevealDriver) -> None:
            frames.append(self.compose())
            if on_frame is not None:
                on_frame(len(frames), current.progress)

        driver.notify_image_loaded(self.image)
        driver.notify_visible(1.0)

        with self._measure("reveal"):
            run_to_completion(
                driver, self.scheduler, self.frame_interval_ms, on_frame=capture
            )

        if driver.state is RevealState.ERROR:
            raise RuntimeError("Reveal ended in an error state")
        if not frames:
            # disabled animation completes without ticking
            capture(driver)

        logger.info(f"Rendered {len(frames)} frames at {self.fps:g} fps")
        return frames


def save_animation(
    frames: List[Image.Image],
    path: Path,
    fps: float = 30.0,
    hold_ms: float = 500.0,
) -> None:
    """Write frames as an animated GIF or PNG; the last frame is held longer."""
    if not frames:
        raise ValueError("No frames to save")

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ANIMATION_FORMATS:
        supported = ", ".join(sorted(ANIMATION_FORMATS))
        raise ValueError(f"Unsupported output format '{suffix}'. Supported formats: {supported}")

    frame_ms = int(round(1000.0 / fps))
    durations = [frame_ms] * len(frames)
    durations[-1] = frame_ms + int(round(hold_ms))

    path.parent.mkdir(parents=True, exist_ok=True)
    save_format = "GIF" if suffix == ".gif" else "PNG"
    frames[0].save(
        path,
        format=save_format,
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        loop=0,
    )
    logger.info(f"Saved {len(frames)} frames to {path}")
