"""Periodic removal of buffers that have been idle for too long."""

from __future__ import annotations

import asyncio

from loguru import logger

from replybot.buffer.store import BufferStore


class BufferReaper:
    """
    Sweeps the store and drops conversations idle for ``factor`` windows.

    A healthy buffer is flushed one window after its last message, so this
    only reclaims entries whose timer was lost or never fired.
    """

    def __init__(
        self,
        store: BufferStore,
        factor: float = 2.0,
        interval_seconds: float = 60.0,
    ):
        self.store = store
        self.factor = factor
        self.interval_seconds = max(1.0, interval_seconds)
        self._running = False

    @property
    def max_idle_seconds(self) -> float:
        return self.store.inactivity_seconds * self.factor

    def sweep(self, now: float | None = None) -> int:
        """Remove stale buffers and return how many were removed."""
        if now is None:
            now = self.store.clock()
        threshold = self.max_idle_seconds
        removed = 0
        for key, buffer in self.store.items():
            if now - buffer.last_activity_at >= threshold:
                self.store.remove(key)
                removed += 1
        if removed:
            logger.info(f"Reaper removed {removed} stale buffer(s)")
        return removed

    async def run(self) -> None:
        """Sweep every ``interval_seconds`` until :meth:`stop` is called."""
        self._running = True
        logger.debug(f"Buffer reaper started (every {self.interval_seconds}s)")
        while self._running:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Buffer sweep failed: {e}")

    def stop(self) -> None:
        self._running = False
