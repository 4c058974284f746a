"""Messaging gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RawMessageRecord:
    """One stored message as returned by the gateway's history endpoint."""

    id: str
    from_me: bool
    text: str
    timestamp: int | None = None


class MessagingGateway(ABC):
    """Reads conversation history and sends text through a messaging gateway."""

    @abstractmethod
    async def fetch_history(
        self,
        instance: str,
        key: str,
        credentials: str,
        limit: int = 10,
    ) -> list[RawMessageRecord]:
        """Return recent messages of the conversation ``key``, newest first."""

    @abstractmethod
    async def send_text(
        self,
        instance: str,
        number: str,
        credentials: str,
        text: str,
    ) -> None:
        """Send ``text`` to ``number`` through ``instance``."""

    async def close(self) -> None:
        """Release network resources."""
