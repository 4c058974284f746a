"""Debounce buffering of inbound messages."""

from replybot.buffer.reaper import BufferReaper
from replybot.buffer.scheduler import AsyncioScheduler, Scheduler
from replybot.buffer.store import BufferStore, ConversationBuffer

__all__ = ["AsyncioScheduler", "BufferReaper", "BufferStore", "ConversationBuffer", "Scheduler"]
