"""Model backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from replybot.events import ToolInvocation


@dataclass
class LLMResponse:
    """Normalized chat completion."""

    content: str | None
    tool_calls: list[ToolInvocation] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


class LLMProvider(ABC):
    """A chat-completions backend with function calling."""

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        tool_choice: str = "auto",
    ) -> LLMResponse:
        """Send one completion request. Raises ProviderError on failure."""

    @abstractmethod
    def get_default_model(self) -> str:
        """Model used when none is passed to :meth:`chat`."""

    async def close(self) -> None:
        """Release network resources."""
