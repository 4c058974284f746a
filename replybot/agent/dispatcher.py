"""Delivers the final reply through the messaging gateway."""

from __future__ import annotations

import re

from loguru import logger

from replybot.errors import DispatchError
from replybot.events import ConversationKey, InboundMessage
from replybot.gateway.base import MessagingGateway


class Dispatcher:
    def __init__(self, gateway: MessagingGateway):
        self.gateway = gateway

    @staticmethod
    def normalize_number(key: ConversationKey) -> str:
        """``5511999990000@s.whatsapp.net`` -> ``5511999990000``."""
        return re.sub(r"\D", "", key.split("@", 1)[0])

    async def send(self, key: ConversationKey, origin: InboundMessage, text: str) -> None:
        """Send ``text`` once. Raises DispatchError on failure."""
        number = self.normalize_number(key)
        if not number:
            raise DispatchError(f"Cannot derive a phone number from {key!r}")
        try:
            await self.gateway.send_text(origin.instance, number, origin.credentials, text)
        except Exception as e:
            raise DispatchError(f"Failed to send reply to {key}: {e}") from e
        logger.info(f"Reply sent to {number} via {origin.instance}")
