"""Bounded tool-calling conversation with the model."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from replybot.agent.tools.registry import ToolRegistry
from replybot.events import ConversationTurn, ToolResult
from replybot.providers.base import LLMProvider


class OrchestratorState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    EXCEEDED = "exceeded"


@dataclass
class OrchestratorResult:
    """Final text of one run plus what happened along the way."""

    state: OrchestratorState
    text: str
    rounds: int
    tool_results: list[ToolResult] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)


class ToolOrchestrator:
    """
    Drives the model through tool calls until it produces a plain answer.

    Each model call is one round. When the model asks for tools, every call
    runs in the order given and its result is appended as a ``tool`` turn
    before the next round. ``max_rounds`` bounds the number of model calls.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tools: ToolRegistry,
        system_prompt: str,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        max_rounds: int = 5,
        fallback_text: str = "Desculpe, ocorreu um erro ao processar sua mensagem.",
        empty_reply_text: str = "Desculpe, não consegui processar sua mensagem.",
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.provider = provider
        self.tools = tools
        self.system_prompt = system_prompt
        self.model = model or provider.get_default_model()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_rounds = max_rounds
        self.fallback_text = fallback_text
        self.empty_reply_text = empty_reply_text

    @staticmethod
    def _strip_think(text: str | None) -> str | None:
        """Remove <think>…</think> blocks that some models embed in content."""
        if not text:
            return None
        return re.sub(r"<think>[\s\S]*?</think>", "", text).strip() or None

    def build_messages(self, history: list[ConversationTurn], text: str) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]
        messages.extend(turn.to_message() for turn in history)
        messages.append({"role": "user", "content": text})
        return messages

    async def run(self, history: list[ConversationTurn], text: str) -> OrchestratorResult:
        """
        Answer ``text`` given prior ``history``.

        Raises ProviderError when the model backend fails; tool failures are
        reported back to the model instead.
        """
        messages = self.build_messages(history, text)
        schemas = self.tools.list_schemas() or None
        tool_results: list[ToolResult] = []
        tools_used: list[str] = []
        state = OrchestratorState.AWAITING_MODEL
        rounds = 0

        while True:
            rounds += 1
            logger.debug(f"Round {rounds}/{self.max_rounds}: {state.value}")
            response = await self.provider.chat(
                messages=messages,
                tools=schemas,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                tool_choice="auto",
            )

            if not response.has_tool_calls:
                content = self._strip_think(response.content)
                return OrchestratorResult(
                    state=OrchestratorState.DONE,
                    text=content or self.empty_reply_text,
                    rounds=rounds,
                    tool_results=tool_results,
                    tools_used=tools_used,
                )

            if rounds >= self.max_rounds:
                names = ", ".join(tc.name for tc in response.tool_calls)
                logger.warning(
                    f"Tool round limit ({self.max_rounds}) reached; dropping requested calls: {names}"
                )
                return OrchestratorResult(
                    state=OrchestratorState.EXCEEDED,
                    text=self.fallback_text,
                    rounds=rounds,
                    tool_results=tool_results,
                    tools_used=tools_used,
                )

            state = OrchestratorState.EXECUTING_TOOLS
            logger.debug(f"Round {rounds}: {state.value} ({len(response.tool_calls)} call(s))")
            messages.append({
                "role": "assistant",
                "content": response.content or "",
                "tool_calls": [
                    {
                        "id": tc.call_id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments, ensure_ascii=False),
                        },
                    }
                    for tc in response.tool_calls
                ],
            })

            for tool_call in response.tool_calls:
                tools_used.append(tool_call.name)
                args_str = json.dumps(tool_call.arguments, ensure_ascii=False)
                logger.info(f"Tool call: {tool_call.name}({args_str[:200]})")
                result = await self.tools.execute(tool_call.name, tool_call.arguments, tool_call.call_id)
                tool_results.append(result)
                messages.append({
                    "role": "tool",
                    "tool_call_id": tool_call.call_id,
                    "name": tool_call.name,
                    "content": result.payload,
                })
            state = OrchestratorState.AWAITING_MODEL
