"""
Frame Scheduler

The loop never blocks: it asks a scheduler for "the next frame" and returns.
A scheduler runs each requested callback exactly once, on the next tick, with
that tick's timestamp in seconds. Callbacks requested while a tick is running
wait for the following tick, so one frame callback never overlaps another.

ManualScheduler is ticked by whoever owns the frame clock: the pygame preview
ticks it once per displayed frame, the exporter ticks it at a fixed rate.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameScheduler(ABC):
    """requestAnimationFrame-style contract"""

    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> int:
        """Run callback(timestamp) on the next frame, returning a handle"""
        pass

    @abstractmethod
    def cancel_frame(self, handle: int) -> None:
        """Drop a pending request; unknown or already-run handles are ignored"""
        pass


class ManualScheduler(FrameScheduler):
    """
    Scheduler driven by explicit tick() calls.

    Example:
        scheduler = ManualScheduler()
        loop = BurstLoop(scheduler, surface)
        loop.activate('game')
        scheduler.run(fps=60)
    """

    def __init__(self):
        self._pending: Dict[int, FrameCallback] = {}
        self._next_handle = 1
        self.frames_ticked = 0
        self.last_timestamp: Optional[float] = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def tick(self, timestamp: float) -> int:
        """
        Run every callback that was pending when the tick started.

        Returns:
            Number of callbacks invoked
        """
        self.frames_ticked += 1
        self.last_timestamp = timestamp

        batch = sorted(self._pending)
        ran = 0
        for handle in batch:
            # An earlier callback in this batch may have cancelled this one
            callback = self._pending.pop(handle, None)
            if callback is None:
                continue
            callback(timestamp)
            ran += 1
        return ran

    def run(
        self,
        fps: float = 60.0,
        max_frames: int = 1000,
        start: float = 0.0,
        on_tick: Optional[Callable[[int, float], None]] = None
    ) -> int:
        """
        Tick at a fixed rate until nothing is pending.

        Args:
            fps: Tick rate
            max_frames: Safety cap on the number of ticks
            start: Timestamp of the first tick
            on_tick: Called with (tick_index, timestamp) after each tick

        Returns:
            Number of ticks performed
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        ticks = 0
        while self._pending and ticks < max_frames:
            timestamp = start + ticks / fps
            self.tick(timestamp)
            if on_tick is not None:
                on_tick(ticks, timestamp)
            ticks += 1

        if self._pending:
            logger.debug("Stopped after %d ticks with %d callbacks still pending", ticks, self.pending)
        return ticks

    def clear(self) -> None:
        self._pending.clear()
