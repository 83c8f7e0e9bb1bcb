"""Frame schedulers that defer batched render passes to the next frame."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

FrameCallback = Callable[[], None]


class FrameScheduler(ABC):
    """Runs callbacks on the next animation frame, never synchronously."""

    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> None:
        """Run ``callback`` once on the next frame."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Drop every callback that has not run yet."""


class AsyncioFrameScheduler(FrameScheduler):
    """
    Aligns callbacks to frame boundaries of the running event loop.

    Frames tick every ``1 / frames_per_second`` seconds of loop time; a
    callback requested mid-frame runs at the next boundary.
    """

    def __init__(self, frames_per_second: int = 60,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        if frames_per_second <= 0:
            raise ValueError("frames_per_second must be positive")
        self.frame_interval = 1.0 / frames_per_second
        self._loop = loop
        self._handles: set[asyncio.TimerHandle] = set()

    def request_frame(self, callback: FrameCallback) -> None:
        loop = self._loop or asyncio.get_running_loop()
        delay = self.frame_interval - (loop.time() % self.frame_interval)

        handle: Optional[asyncio.TimerHandle] = None

        def run() -> None:
            self._handles.discard(handle)
            callback()

        handle = loop.call_later(delay, run)
        self._handles.add(handle)

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()


class ManualFrameScheduler(FrameScheduler):
    """Frames advance only when ``flush`` is called; for headless hosts and tests."""

    def __init__(self) -> None:
        self._pending: list[FrameCallback] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> None:
        self._pending.append(callback)

    def flush(self) -> int:
        """Run one frame; callbacks requested during it wait for the next flush."""
        callbacks, self._pending = self._pending, []
        for callback in callbacks:
            callback()
        return len(callbacks)

    def cancel_all(self) -> None:
        self._pending = []
