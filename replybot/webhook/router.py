"""Turns Evolution API webhook events into buffered inbound messages."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger

from replybot.agent.loop import AgentLoop
from replybot.events import InboundMessage
from replybot.gateway.evolution import extract_text

UPSERT_EVENTS = {"messages.upsert", "MESSAGES_UPSERT"}


def _timestamp(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value))
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now()


def parse_messages_upsert(payload: dict[str, Any]) -> InboundMessage | None:
    """
    Build an InboundMessage from a ``messages.upsert`` payload.

    Returns None for messages sent by us, group chats, and anything
    without plain text.
    """
    data = payload.get("data")
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        return None

    key = data.get("key")
    if not isinstance(key, dict):
        return None
    remote_jid = str(key.get("remoteJid") or "")
    if not remote_jid:
        return None
    if key.get("fromMe"):
        logger.debug(f"Skipping own message to {remote_jid}")
        return None
    if remote_jid.endswith(("@g.us", "@broadcast")):
        logger.debug(f"Skipping group or broadcast message from {remote_jid}")
        return None

    text = extract_text(data.get("message"))
    if not text.strip():
        logger.debug(f"Skipping non-text message from {remote_jid}")
        return None

    return InboundMessage(
        key=remote_jid,
        text=text,
        instance=str(payload.get("instance") or ""),
        credentials=str(payload.get("apikey") or ""),
        raw=payload,
        message_id=str(key.get("id") or ""),
        push_name=data.get("pushName"),
        timestamp=_timestamp(data.get("messageTimestamp")),
    )


class WebhookRouter:
    """Dispatches webhook events by type."""

    def __init__(self, agent: AgentLoop):
        self.agent = agent

    def route(self, payload: dict[str, Any]) -> str:
        """Handle one webhook payload and return what was done with it."""
        event = str(payload.get("event") or "")
        if event not in UPSERT_EVENTS:
            logger.warning(f"Unhandled webhook event: {event or '(missing)'}")
            return "ignored"

        msg = parse_messages_upsert(payload)
        if msg is None:
            return "skipped"
        self.agent.ingest(msg)
        return "buffered"
