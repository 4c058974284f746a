"""Cancellable delayed callbacks used for inactivity timers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable


class Scheduler(ABC):
    """Schedules a plain callback after a delay and cancels it on request."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run ``callback`` after ``delay`` seconds and return a handle."""

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by :meth:`schedule`. Cancelling twice is a no-op."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running event loop's ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, delay), callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        if handle is not None:
            handle.cancel()
