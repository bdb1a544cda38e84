"""Reveal timeline and the frame-driven animation driver.

The driver is an explicit state object: a host (UI toolkit, headless renderer
or test) feeds it image-load and visibility notifications and either lets it
schedule its own frames through a `FrameScheduler` or calls `tick()` itself.

States::

    IDLE -> DELAYED -> RUNNING <-> PAUSED
                          |
                          v
                       COMPLETE

``ERROR`` is terminal for a failed image load until the next reset.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from .blob_mask import BlobMaskRenderer
from .compositor import FrameCompositor, ImageSource, Surface
from .config import RevealConfiguration
from .patterns import BlobDescriptor, PatternGenerator
from .scheduling import DelayScheduler, FrameScheduler, ManualScheduler
from ..errors import ImageLoadFailure, SurfaceUnavailable
from ..utils.math import clamp_value

logger = logging.getLogger(__name__)

SizeProvider = Callable[[], Optional[Tuple[int, int]]]


class RevealState(Enum):
    IDLE = "idle"
    DELAYED = "delayed"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class RevealTimeline:
    """Playback clock for one reveal.

    ``start_timestamp`` is captured on the first advance. Time spent paused
    shifts the start forward so progress resumes where it froze. Progress
    never decreases, even if the host clock steps backwards.
    """

    duration_ms: float
    start_timestamp: Optional[float] = None
    last_timestamp: Optional[float] = None
    progress: float = 0.0

    @property
    def elapsed_ms(self) -> float:
        if self.start_timestamp is None or self.last_timestamp is None:
            return 0.0
        return max(0.0, self.last_timestamp - self.start_timestamp)

    def advance(self, now_ms: float, paused: bool = False) -> float:
        """Move the clock to `now_ms` and return the current progress."""
        if self.start_timestamp is None:
            if paused:
                return self.progress
            self.start_timestamp = now_ms
            self.last_timestamp = now_ms

        if paused:
            if now_ms > self.last_timestamp:
                self.start_timestamp += now_ms - self.last_timestamp
                self.last_timestamp = now_ms
            return self.progress

        self.last_timestamp = max(self.last_timestamp, now_ms)
        elapsed = now_ms - self.start_timestamp
        progress = clamp_value(elapsed / self.duration_ms, 0.0, 1.0)
        self.progress = max(self.progress, progress)
        return self.progress


class RevealDriver:
    """Owns the blob set, the timeline, the surface and the frame schedule."""

    def __init__(
        self,
        config: Optional[RevealConfiguration] = None,
        frame_scheduler: Optional[FrameScheduler] = None,
        delay_scheduler: Optional[DelayScheduler] = None,
        surface_size_provider: Optional[SizeProvider] = None,
        rng: Optional[np.random.Generator] = None,
        on_reveal_start: Optional[Callable[[], None]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        on_reveal_complete: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[ImageLoadFailure], None]] = None,
        on_fade: Optional[Callable[[float], None]] = None,
    ):
        self.config = config or RevealConfiguration()
        if frame_scheduler is None:
            frame_scheduler = ManualScheduler()
        self.frame_scheduler = frame_scheduler
        self.delay_scheduler = delay_scheduler if delay_scheduler is not None else frame_scheduler
        self.surface_size_provider = surface_size_provider

        self.on_reveal_start = on_reveal_start
        self.on_progress = on_progress
        self.on_reveal_complete = on_reveal_complete
        self.on_error = on_error
        self.on_fade = on_fade

        self.generator = PatternGenerator(rng)
        self.surface = Surface(device_pixel_ratio=self.config.effective_pixel_ratio)
        self.compositor = FrameCompositor(self._build_mask_renderer(), self.config.fit_mode)

        self._state = RevealState.IDLE
        self.timeline: Optional[RevealTimeline] = None
        self._blobs: Tuple[BlobDescriptor, ...] = ()
        self._blobs_stale = True
        self._frame_handle: Optional[int] = None
        self._delay_handle: Optional[int] = None
        self._overlay_opacity = 0.0
        self._completion_fired = False
        self._image_loaded = False
        self._visible = not self.config.trigger_on_viewport
        self._disposed = False

        self.regenerate()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> RevealState:
        return self._state

    @property
    def blobs(self) -> Tuple[BlobDescriptor, ...]:
        return self._blobs

    @property
    def progress(self) -> float:
        return self.timeline.progress if self.timeline is not None else 0.0

    @property
    def overlay_opacity(self) -> float:
        """Opacity of the unmasked final image layer."""
        return self._overlay_opacity

    @property
    def placeholder_visible(self) -> bool:
        return self._state not in (RevealState.COMPLETE, RevealState.ERROR)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def has_pending_frame(self) -> bool:
        return self._frame_handle is not None

    @property
    def has_pending_delay(self) -> bool:
        return self._delay_handle is not None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(self, config: RevealConfiguration) -> List[BlobDescriptor]:
        """Apply a configuration and return the blob set it produces.

        Any change while a reveal is in flight resets the driver to IDLE.
        Blobs are regenerated when the layout fields change or the current
        set was invalidated by a reset.
        """
        if self._disposed:
            raise RuntimeError("Cannot configure a disposed reveal")

        previous = self.config
        if config != previous and self._state is not RevealState.IDLE:
            logger.info("Configuration changed during reveal; resetting")
            self.reset()

        self.config = config
        if not config.trigger_on_viewport:
            self._visible = True
        self._apply_drawing_config()

        if self._blobs_stale or config.generation_key() != previous.generation_key():
            return self.regenerate()
        return list(self._blobs)

    def regenerate(self) -> List[BlobDescriptor]:
        """Draw a fresh blob set from the current configuration."""
        config = self.config
        blobs = self.generator.generate(
            config.blob_count,
            config.pattern,
            config.blob_size_min,
            config.blob_size_max,
            config.blob_stagger,
            config.custom_blobs,
        )
        self._blobs = tuple(blobs)
        self._blobs_stale = False
        return list(self._blobs)

    def _build_mask_renderer(self) -> BlobMaskRenderer:
        return BlobMaskRenderer(
            roughness=self.config.blob_roughness,
            point_count=self.config.blob_complexity,
            easing=self.config.easing,
        )

    def _apply_drawing_config(self) -> None:
        self.compositor.mask_renderer = self._build_mask_renderer()
        self.compositor.set_fit_mode(self.config.fit_mode)
        if self.surface.device_pixel_ratio != self.config.effective_pixel_ratio:
            self.surface = Surface(device_pixel_ratio=self.config.effective_pixel_ratio)

    # ------------------------------------------------------------------
    # Host notifications
    # ------------------------------------------------------------------

    def notify_image_loaded(self, image: ImageSource) -> None:
        """Image-load notifier resolved; `image` becomes the source."""
        if self._disposed:
            return
        self.compositor.set_source(image)
        self._image_loaded = True
        source = self.compositor.source
        logger.debug(f"Source image loaded: {source.width}x{source.height}")
        self._maybe_trigger()

    def notify_image_failed(self, error: Optional[BaseException] = None) -> None:
        """Image-load notifier rejected; enter the terminal error state."""
        if self._disposed:
            return
        if isinstance(error, ImageLoadFailure):
            failure = error
        else:
            message = f"Failed to load image: {error}" if error else "Failed to load image"
            failure = ImageLoadFailure(message, cause=error)

        self._cancel_pending()
        self._image_loaded = False
        self._set_state(RevealState.ERROR)
        logger.warning(str(failure))
        self._emit(self.on_error, failure)

    def notify_visible(self, intersection_ratio: float = 1.0) -> None:
        """Visibility notifier fired with the visible fraction of the element."""
        if self._disposed or self._visible:
            return
        if intersection_ratio <= 0 or intersection_ratio < self.config.viewport_threshold:
            return
        self._visible = True
        self._maybe_trigger()

    def _maybe_trigger(self) -> None:
        if self._state is RevealState.IDLE and self._image_loaded and self._visible:
            self.trigger()

    # ------------------------------------------------------------------
    # Playback control
    # ------------------------------------------------------------------

    def trigger(self) -> None:
        """Start the reveal, waiting out the configured start delay first."""
        if self._disposed:
            return
        if self._state is not RevealState.IDLE:
            logger.debug(f"Ignoring trigger in state {self._state.value}")
            return

        if self.config.disable_animation:
            self.timeline = RevealTimeline(self.config.duration_ms, progress=1.0)
            self._finish()
            return

        if self.config.delay_ms > 0:
            self._set_state(RevealState.DELAYED)
            self._delay_handle = self.delay_scheduler.call_later(
                self.config.delay_ms, self._on_delay_elapsed
            )
        else:
            self._begin_running()

    def pause(self) -> None:
        if self._state is RevealState.RUNNING:
            self._set_state(RevealState.PAUSED)
        else:
            logger.debug(f"Ignoring pause in state {self._state.value}")

    def resume(self) -> None:
        if self._state is RevealState.PAUSED:
            self._set_state(RevealState.RUNNING)
            self._schedule_frame()
        else:
            logger.debug(f"Ignoring resume in state {self._state.value}")

    def reset(self) -> None:
        """Tear down the timeline and schedule and return to IDLE."""
        self._cancel_pending()
        self.timeline = None
        self._blobs_stale = True
        self._completion_fired = False
        self._overlay_opacity = 0.0
        self.surface.clear()
        self._set_state(RevealState.IDLE)

    def replay(self) -> None:
        """Reset and start again as soon as the trigger gates allow."""
        if self._disposed:
            return
        self.reset()
        self._maybe_trigger()

    def dispose(self) -> None:
        """Cancel everything; later ticks and notifications are ignored."""
        self._cancel_pending()
        self._disposed = True
        self.surface.clear()
        self._set_state(RevealState.IDLE)

    def tick(self, now_ms: float) -> bool:
        """Advance one frame at `now_ms`; return whether a redraw happened."""
        if self._disposed or self._state not in (RevealState.RUNNING, RevealState.PAUSED):
            return False

        if self._state is RevealState.PAUSED:
            self.timeline.advance(now_ms, paused=True)
            return False

        progress = self.timeline.advance(now_ms)
        redrawn = self._redraw(progress)
        self._emit(self.on_progress, progress)

        fade_start = self.config.fade_in_start
        if progress > fade_start:
            self._set_opacity((progress - fade_start) / (1 - fade_start))

        if progress >= 1:
            self._finish()
        return redrawn

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin_running(self) -> None:
        if self._blobs_stale:
            self.regenerate()
        self.timeline = RevealTimeline(self.config.duration_ms)
        self._completion_fired = False
        self._overlay_opacity = 0.0
        self._set_state(RevealState.RUNNING)
        logger.info(
            f"Reveal started: {len(self._blobs)} blobs, "
            f"pattern={self.config.pattern.value}, duration={self.config.duration_ms:.0f}ms"
        )
        self._emit(self.on_reveal_start)
        self._schedule_frame()

    def _on_delay_elapsed(self) -> None:
        self._delay_handle = None
        if self._disposed or self._state is not RevealState.DELAYED:
            return
        self._begin_running()

    def _schedule_frame(self) -> None:
        if self._frame_handle is None and not self._disposed:
            self._frame_handle = self.frame_scheduler.request_frame(self._on_frame)

    def _on_frame(self, timestamp_ms: float) -> None:
        self._frame_handle = None
        if self._disposed or self._state not in (RevealState.RUNNING, RevealState.PAUSED):
            return
        try:
            self.tick(timestamp_ms)
        except Exception:
            logger.exception(f"Frame at {timestamp_ms:.1f}ms failed; continuing")
        if self._state in (RevealState.RUNNING, RevealState.PAUSED):
            self._schedule_frame()

    def _surface_size(self) -> Optional[Tuple[int, int]]:
        if self.surface_size_provider is not None:
            size = self.surface_size_provider()
        elif self.compositor.source is not None:
            size = self.compositor.source.size
        else:
            size = None

        if not size or size[0] <= 0 or size[1] <= 0:
            return None
        return int(size[0]), int(size[1])

    def _redraw(self, progress: float) -> bool:
        try:
            size = self._surface_size()
            if size is None:
                raise SurfaceUnavailable("Surface size is not available")
            self.surface.resize(*size)
            self.compositor.draw_frame(self.surface, self._blobs, progress)
            return True
        except SurfaceUnavailable as e:
            logger.debug(f"Skipping redraw at progress {progress:.3f}: {e}")
        except Exception:
            logger.exception(f"Redraw failed at progress {progress:.3f}; skipping frame")
        return False

    def _finish(self) -> None:
        self._cancel_pending()
        self._set_state(RevealState.COMPLETE)
        self._set_opacity(1.0)
        if not self._completion_fired:
            self._completion_fired = True
            logger.info("Reveal complete")
            self._emit(self.on_reveal_complete)

    def _set_opacity(self, value: float) -> None:
        value = clamp_value(value, 0.0, 1.0)
        if value != self._overlay_opacity:
            self._overlay_opacity = value
            self._emit(self.on_fade, value)

    def _set_state(self, state: RevealState) -> None:
        if state is not self._state:
            logger.debug(f"Reveal state {self._state.value} -> {state.value}")
            self._state = state

    def _cancel_pending(self) -> None:
        if self._frame_handle is not None:
            self.frame_scheduler.cancel_frame(self._frame_handle)
            self._frame_handle = None
        if self._delay_handle is not None:
            self.delay_scheduler.cancel_timer(self._delay_handle)
            self._delay_handle = None

    def _emit(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Reveal callback {getattr(callback, '__name__', callback)!r} raised")


def run_to_completion(
    driver: RevealDriver,
    scheduler: ManualScheduler,
    frame_interval_ms: float,
    max_frames: int = 100_000,
    on_frame: Optional[Callable[[RevealDriver], None]] = None,
) -> int:
    """Advance a manually scheduled driver until it completes or errors.

    Returns the number of frames advanced. Raises RuntimeError if the reveal
    neither completes nor fails within `max_frames`.
    """
    if frame_interval_ms <= 0:
        raise ValueError(f"Frame interval must be positive, got {frame_interval_ms}")

    terminal = (RevealState.COMPLETE, RevealState.ERROR)
    frames = 0
    while driver.state not in terminal:
        if driver.state is RevealState.IDLE:
            raise RuntimeError("Reveal has not been triggered")
        if frames >= max_frames:
            raise RuntimeError(f"Reveal did not complete within {max_frames} frames")
        scheduler.advance(frame_interval_ms)
        frames += 1
        if on_frame is not None:
            on_frame(driver)
    return frames
