"""Recent conversation history for the model prompt."""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from replybot.events import ConversationKey, ConversationTurn, InboundMessage
from replybot.gateway.base import MessagingGateway, RawMessageRecord


class ContextFetcher:
    """
    Loads the last few turns of a conversation from the messaging gateway.

    The messages currently being answered are already in the buffered text,
    so any history turn matching one of them is dropped. History is a nice
    to have: a gateway failure yields an empty history instead of an error.
    """

    def __init__(self, gateway: MessagingGateway, fetch_limit: int = 10, max_turns: int = 5):
        self.gateway = gateway
        self.fetch_limit = fetch_limit
        self.max_turns = max_turns

    async def load(
        self,
        key: ConversationKey,
        excluding: Iterable[str],
        origin: InboundMessage,
    ) -> list[ConversationTurn]:
        try:
            records = await self.gateway.fetch_history(
                origin.instance,
                key,
                origin.credentials,
                limit=self.fetch_limit,
            )
        except Exception as e:
            logger.warning(f"Could not load history for {key}, continuing without it: {e}")
            return []
        return self.to_turns(records, excluding)

    def to_turns(
        self,
        records: list[RawMessageRecord],
        excluding: Iterable[str],
    ) -> list[ConversationTurn]:
        """Convert gateway records to oldest-first turns, bounded to ``max_turns``."""
        if self.max_turns <= 0:
            return []
        skip = {t.strip().lower() for t in excluding if t and t.strip()}

        records = self._oldest_first(records)

        turns: list[ConversationTurn] = []
        for record in records:
            content = (record.text or "").strip()
            if not content or content.lower() in skip:
                continue
            turns.append(ConversationTurn(
                role="assistant" if record.from_me else "user",
                content=content,
            ))
        return turns[-self.max_turns:]

    @staticmethod
    def _oldest_first(records: list[RawMessageRecord]) -> list[RawMessageRecord]:
        # Gateway order is newest first unless the stamps we do have ascend.
        known = [r.timestamp for r in records if r.timestamp is not None]
        if len(known) == len(records):
            return sorted(records, key=lambda r: r.timestamp)
        if len(known) >= 2 and known == sorted(known) and known[0] != known[-1]:
            return list(records)
        return list(reversed(records))
