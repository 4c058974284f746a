"""
Per-conversation debounce buffer.

Messages from one conversation are held until the sender has been quiet
for a full inactivity window. Every new message cancels the pending timer
and schedules a fresh one, so the deadline slides forward. When the timer
fires, the owner calls :meth:`BufferStore.flush` to consume the text.

Each ingest bumps a per-key generation counter. The timer callback carries
the generation it was scheduled for, and ``flush`` rejects callbacks whose
generation is no longer current. A message that arrives while a flush is
being processed therefore starts a new cycle instead of touching the one
already in flight.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Literal

from loguru import logger

from replybot.buffer.scheduler import Scheduler
from replybot.events import BufferedUnit, ConversationKey, InboundMessage

MergeMode = Literal["replace", "concat"]

# Called with (key, generation) once the inactivity window elapses.
FlushDue = Callable[[ConversationKey, int], None]


@dataclass
class ConversationBuffer:
    """Mutable state for one conversation."""

    key: ConversationKey
    last_activity_at: float
    pending_texts: list[str] = field(default_factory=list)
    pending_context: InboundMessage | None = None
    scheduled_flush: Any = None
    generation: int = 0

    @property
    def pending_text(self) -> str:
        return "\n".join(self.pending_texts)

    @property
    def has_pending(self) -> bool:
        return self.pending_context is not None


class BufferStore:
    """Owns every :class:`ConversationBuffer` and its inactivity timer."""

    def __init__(
        self,
        scheduler: Scheduler,
        on_due: FlushDue,
        inactivity_seconds: float = 10.0,
        merge_mode: MergeMode = "replace",
        clock: Callable[[], float] = time.monotonic,
    ):
        if inactivity_seconds <= 0:
            raise ValueError("inactivity_seconds must be positive")
        if merge_mode not in ("replace", "concat"):
            raise ValueError(f"Unknown merge mode: {merge_mode}")
        self.scheduler = scheduler
        self.inactivity_seconds = inactivity_seconds
        self.merge_mode = merge_mode
        self.clock = clock
        self._on_due = on_due
        self._buffers: dict[ConversationKey, ConversationBuffer] = {}

    def ingest(self, msg: InboundMessage) -> ConversationBuffer:
        """Buffer ``msg`` and restart the inactivity window for its conversation."""
        key = msg.key
        buffer = self._buffers.get(key)
        if buffer is None:
            buffer = ConversationBuffer(key=key, last_activity_at=self.clock())
            self._buffers[key] = buffer
            logger.debug(f"Created buffer for {key}")

        if self.merge_mode == "concat":
            buffer.pending_texts.append(msg.text)
        else:
            buffer.pending_texts = [msg.text]
        buffer.last_activity_at = self.clock()
        buffer.pending_context = msg
        buffer.generation += 1

        if buffer.scheduled_flush is not None:
            self.scheduler.cancel(buffer.scheduled_flush)
            logger.debug(f"Cancelled pending flush for {key}")

        generation = buffer.generation
        buffer.scheduled_flush = self.scheduler.schedule(
            self.inactivity_seconds,
            lambda: self._on_due(key, generation),
        )
        logger.debug(
            f"Buffered message for {key} (gen {generation}, "
            f"{len(buffer.pending_texts)} pending), flush in {self.inactivity_seconds}s"
        )
        return buffer

    def flush(self, key: ConversationKey, generation: int | None = None) -> BufferedUnit | None:
        """
        Consume the pending text for ``key``.

        Returns None when there is nothing to process: the buffer is gone,
        ``generation`` is stale, the text was already consumed, or the text
        is blank. Blank text is still consumed so that it is not retried.
        """
        buffer = self._buffers.get(key)
        if buffer is None:
            logger.debug(f"Flush for {key} ignored: no buffer")
            return None
        if generation is not None and generation != buffer.generation:
            logger.debug(
                f"Flush for {key} ignored: stale generation {generation} "
                f"(current {buffer.generation})"
            )
            return None
        if not buffer.has_pending:
            logger.debug(f"Flush for {key} ignored: already consumed")
            return None

        texts = [t for t in buffer.pending_texts if t and t.strip()]
        origin = buffer.pending_context
        if buffer.scheduled_flush is not None:
            self.scheduler.cancel(buffer.scheduled_flush)
        buffer.pending_texts = []
        buffer.pending_context = None
        buffer.scheduled_flush = None

        if not texts:
            logger.debug(f"Flush for {key} ignored: empty text")
            return None

        text = "\n".join(t.strip() for t in texts)
        logger.info(f"Flushing buffer for {key}: {len(texts)} message(s)")
        return BufferedUnit(
            key=key,
            text=text,
            texts=texts,
            origin=origin,
            generation=buffer.generation,
        )

    def remove(self, key: ConversationKey) -> bool:
        """Drop the buffer for ``key`` and cancel its timer."""
        buffer = self._buffers.pop(key, None)
        if buffer is None:
            return False
        if buffer.scheduled_flush is not None:
            self.scheduler.cancel(buffer.scheduled_flush)
            buffer.scheduled_flush = None
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer without flushing. Returns the number cancelled."""
        cancelled = 0
        for buffer in self._buffers.values():
            if buffer.scheduled_flush is not None:
                self.scheduler.cancel(buffer.scheduled_flush)
                buffer.scheduled_flush = None
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending flush timer(s)")
        return cancelled

    def get(self, key: ConversationKey) -> ConversationBuffer | None:
        return self._buffers.get(key)

    def items(self) -> Iterator[tuple[ConversationKey, ConversationBuffer]]:
        """Iterate over a snapshot of the buffers."""
        return iter(list(self._buffers.items()))

    def stats(self) -> dict[str, int]:
        active = sum(1 for b in self._buffers.values() if b.scheduled_flush is not None)
        return {"total_buffers": len(self._buffers), "active_buffers": active}

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, key: object) -> bool:
        return key in self._buffers
