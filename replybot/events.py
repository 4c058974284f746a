"""Value types exchanged between the webhook, the buffer and the agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# Remote participant address, e.g. "5511999990000@s.whatsapp.net".
ConversationKey = str

Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class InboundMessage:
    """A text message received from the messaging gateway webhook."""

    key: ConversationKey
    text: str
    instance: str
    credentials: str
    raw: dict[str, Any] = field(default_factory=dict)
    message_id: str = ""
    push_name: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class BufferedUnit:
    """Text consumed from a buffer at flush time."""

    key: ConversationKey
    text: str
    texts: list[str]
    origin: InboundMessage
    generation: int


@dataclass
class ConversationTurn:
    """One prior message of a conversation, as seen by the model."""

    role: Role
    content: str
    tool_call_id: str | None = None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id:
            message["tool_call_id"] = self.tool_call_id
        return message


@dataclass
class ToolInvocation:
    """A tool call requested by the model."""

    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of one tool execution, fed back to the model."""

    call_id: str
    success: bool
    payload: str
