"""OpenAI-compatible chat completions provider (DeepSeek by default)."""

from __future__ import annotations

import json
from typing import Any

import httpx
import json_repair
from loguru import logger

from replybot.errors import ProviderError
from replybot.events import ToolInvocation
from replybot.providers.base import LLMProvider, LLMResponse


class OpenAICompatibleProvider(LLMProvider):
    """Calls ``{api_base}/chat/completions`` with bearer auth."""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.deepseek.com",
        default_model: str = "deepseek-chat",
        timeout_seconds: float = 60.0,
        extra_headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(api_key=api_key, api_base=api_base.rstrip("/"))
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.extra_headers = dict(extra_headers or {})
        self._client = client
        self._owns_client = client is None

    def get_default_model(self) -> str:
        return self.default_model

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        tool_choice: str = "auto",
    ) -> LLMResponse:
        body: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": messages,
            "max_tokens": max(1, max_tokens),
            "temperature": temperature,
        }
        if tools:
            body["tools"] = tools
            body["tool_choice"] = tool_choice

        url = f"{self.api_base}/chat/completions"
        try:
            response = await self._get_client().post(
                url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    **self.extra_headers,
                },
                json=body,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Model API returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Model API request failed: {e}") from e

        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: Any) -> LLMResponse:
        """Normalize a chat completion payload."""
        if not isinstance(data, dict):
            raise ProviderError(f"Unsupported response type: {type(data).__name__}")
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("Model API response has no choices")

        choice = choices[0] if isinstance(choices[0], dict) else {}
        message = choice.get("message") or {}
        tool_calls: list[ToolInvocation] = []
        for i, tc in enumerate(message.get("tool_calls") or []):
            if not isinstance(tc, dict):
                continue
            fn = tc.get("function") or {}
            name = fn.get("name")
            if not name:
                raise ProviderError("Unsupported tool call shape: missing name")
            args = fn.get("arguments")
            if args is None:
                args = {}
            if isinstance(args, str):
                try:
                    args = json.loads(args) if args.strip() else {}
                except json.JSONDecodeError:
                    args = json_repair.loads(args)
            if not isinstance(args, dict):
                logger.warning(f"Tool call {name} has non-object arguments, using raw value")
                args = {"raw": args}
            tool_calls.append(
                ToolInvocation(call_id=str(tc.get("id") or f"call_{i}"), name=str(name), arguments=args)
            )

        usage = data.get("usage")
        return LLMResponse(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=str(choice.get("finish_reason") or "stop"),
            usage=usage if isinstance(usage, dict) else {},
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
