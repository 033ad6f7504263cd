"""
Frame schedulers for the capture loop.

The controller never sleeps or spins; it asks a scheduler for the next
frame callback and receives sink events through call_soon_threadsafe, so
all controller state is touched from a single thread.

- AsyncioFrameScheduler: real-time, one callback per 1/fps seconds on an
  asyncio event loop.
- ManualFrameScheduler: callbacks run when the owner steps it. Used by
  tests and by offline exports that should run as fast as the encoder
  accepts frames.
"""

import asyncio
import itertools
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class FrameScheduler:
    """Interface shared by the schedulers."""

    def request_frame(self, callback: Callable[[], Any]) -> Any:
        """Schedule callback for the next frame; returns a handle for cancel()."""
        raise NotImplementedError

    def cancel(self, handle: Any) -> None:
        raise NotImplementedError

    def call_soon_threadsafe(self, callback: Callback, *args: Any) -> None:
        """Run callback(*args) on the scheduler thread. Safe from any thread."""
        raise NotImplementedError


class AsyncioFrameScheduler(FrameScheduler):
    """Frame ticks on an asyncio loop at the nominal frame interval."""

    def __init__(self, fps: int, loop: Optional[asyncio.AbstractEventLoop] = None):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self.interval = 1.0 / fps
        self.loop = loop or asyncio.get_running_loop()

    def request_frame(self, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.interval, callback)

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()

    def call_soon_threadsafe(self, callback: Callback, *args: Any) -> None:
        self.loop.call_soon_threadsafe(callback, *args)


class ManualFrameScheduler(FrameScheduler):
    """
    Scheduler driven explicitly by its owner.

    Frame callbacks wait until step() is called. Callbacks posted from other
    threads are queued and drained at the start of every step.
    """

    def __init__(self):
        self._frames: Dict[int, Callable[[], Any]] = {}
        self._posted: Deque[Tuple[Callback, Tuple[Any, ...]]] = deque()
        self._ids = itertools.count()
        self._cond = threading.Condition()
        self.frames_run = 0

    def request_frame(self, callback: Callable[[], Any]) -> int:
        handle = next(self._ids)
        self._frames[handle] = callback
        return handle

    def cancel(self, handle: Any) -> None:
        self._frames.pop(handle, None)

    def call_soon_threadsafe(self, callback: Callback, *args: Any) -> None:
        with self._cond:
            self._posted.append((callback, args))
            self._cond.notify_all()

    @property
    def has_pending_frame(self) -> bool:
        return bool(self._frames)

    def drain_posted(self) -> int:
        """Run every queued cross-thread callback; returns how many ran."""
        ran = 0
        while True:
            with self._cond:
                if not self._posted:
                    return ran
                callback, args = self._posted.popleft()
            callback(*args)
            ran += 1

    def step(self) -> bool:
        """
        Drain posted callbacks, then run the oldest pending frame callback.

        Returns:
            True if a frame callback ran
        """
        self.drain_posted()
        if not self._frames:
            return False
        handle = min(self._frames)
        callback = self._frames.pop(handle)
        callback()
        self.frames_run += 1
        return True

    def run_until(self, condition: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        """
        Step until condition() holds.

        When no frame is pending, waits for cross-thread callbacks (sink
        events) instead of spinning. With timeout=None it waits for as long
        as it takes.

        Returns:
            False if the timeout expired first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.drain_posted()
            if condition():
                return True
            if self.step():
                continue
            remaining = 0.1 if deadline is None else deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Manual scheduler gave up after {timeout}s")
                return False
            with self._cond:
                if not self._posted:
                    self._cond.wait(min(remaining, 0.1))
