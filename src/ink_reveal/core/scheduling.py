"""Frame and delay scheduling primitives used by the reveal driver.

The driver only needs something that runs a callback on the next display
refresh and something that runs a callback after a delay, both cancellable.
`ManualScheduler` provides both for headless rendering and tests: time only
moves when the caller advances it.
"""

import heapq
import logging
from typing import Callable, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]
TimerCallback = Callable[[], None]


class FrameScheduler(Protocol):
    def request_frame(self, callback: FrameCallback) -> int:
        """Run `callback(timestamp_ms)` on the next frame; return a handle."""

    def cancel_frame(self, handle: int) -> None:
        """Cancel a pending frame callback; unknown handles are ignored."""


class DelayScheduler(Protocol):
    def call_later(self, delay_ms: float, callback: TimerCallback) -> int:
        """Run `callback()` after `delay_ms`; return a handle."""

    def cancel_timer(self, handle: int) -> None:
        """Cancel a pending timer; unknown handles are ignored."""


class ManualScheduler:
    """Deterministic frame and timer scheduler driven by explicit time steps."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = float(start_ms)
        self._next_handle = 1
        self._frames: Dict[int, FrameCallback] = {}
        self._timers: Dict[int, Tuple[float, TimerCallback]] = {}
        self.frames_run = 0
        self.timers_fired = 0

    def _handle(self) -> int:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def request_frame(self, callback: FrameCallback) -> int:
        handle = self._handle()
        self._frames[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._frames.pop(handle, None)

    def call_later(self, delay_ms: float, callback: TimerCallback) -> int:
        if delay_ms < 0:
            raise ValueError(f"Delay must be non-negative, got {delay_ms}")
        handle = self._handle()
        self._timers[handle] = (self.now_ms + delay_ms, callback)
        return handle

    def cancel_timer(self, handle: int) -> None:
        self._timers.pop(handle, None)

    @property
    def pending_frames(self) -> int:
        return len(self._frames)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def fire_due_timers(self) -> int:
        """Fire timers due at or before the current time, earliest first."""
        due: List[Tuple[float, int]] = [
            (when, handle) for handle, (when, _) in self._timers.items() if when <= self.now_ms
        ]
        heapq.heapify(due)
        fired = 0
        while due:
            _, handle = heapq.heappop(due)
            entry = self._timers.pop(handle, None)
            if entry is None:
                # cancelled by an earlier timer
                continue
            entry[1]()
            fired += 1
        self.timers_fired += fired
        return fired

    def run_frame(self, timestamp_ms: Optional[float] = None) -> int:
        """Run every frame callback requested before this call."""
        if timestamp_ms is not None:
            self.now_ms = float(timestamp_ms)
        handles = list(self._frames)
        ran = 0
        for handle in handles:
            callback = self._frames.pop(handle, None)
            if callback is None:
                # cancelled by an earlier callback in this batch
                continue
            callback(self.now_ms)
            ran += 1
        self.frames_run += ran
        return ran

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward, fire due timers, then run one frame."""
        if delta_ms < 0:
            raise ValueError(f"Time cannot move backwards: {delta_ms}")
        self.now_ms += delta_ms
        self.fire_due_timers()
        return self.run_frame()
