from __future__ import annotations

from typing import Any, Callable

import pytest

from replybot.buffer.scheduler import Scheduler
from replybot.errors import GatewayError
from replybot.events import InboundMessage
from replybot.gateway.base import MessagingGateway, RawMessageRecord


class VirtualScheduler(Scheduler):
    """Scheduler and clock driven by ``advance`` instead of wall time."""

    def __init__(self):
        self.now = 0.0
        self._timers: dict[int, tuple[float, Callable[[], None]]] = {}
        self._seq = 0

    def clock(self) -> float:
        return self.now

    def schedule(self, delay, callback):
        self._seq += 1
        self._timers[self._seq] = (self.now + delay, callback)
        return self._seq

    def cancel(self, handle):
        self._timers.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._timers)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [(when, h) for h, (when, _) in self._timers.items() if when <= target]
            if not due:
                break
            when, handle = min(due)
            _, callback = self._timers.pop(handle)
            self.now = when
            callback()
        self.now = target


class FakeGateway(MessagingGateway):
    def __init__(self):
        self.history: dict[str, list[RawMessageRecord]] = {}
        self.sent: list[tuple[str, str, str, str]] = []
        self.fetch_calls: list[tuple[str, str, str, int]] = []
        self.fail_fetch = False
        self.fail_send = False
        self.closed = False

    async def fetch_history(self, instance, key, credentials, limit=10):
        self.fetch_calls.append((instance, key, credentials, limit))
        if self.fail_fetch:
            raise GatewayError("history unavailable", url="/chat/findMessages", method="POST", status=500)
        return list(self.history.get(key, []))

    async def send_text(self, instance, number, credentials, text):
        if self.fail_send:
            raise GatewayError("send failed", url="/message/sendText", method="POST", status=502)
        self.sent.append((instance, number, credentials, text))

    async def close(self):
        self.closed = True


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_message() -> Callable[..., InboundMessage]:
    def _make(text: str, key: str = "5511999990000@s.whatsapp.net", **kwargs: Any) -> InboundMessage:
        kwargs.setdefault("instance", "barber")
        kwargs.setdefault("credentials", "secret-key")
        return InboundMessage(key=key, text=text, **kwargs)

    return _make
