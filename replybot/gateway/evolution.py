"""Evolution API (WhatsApp) gateway client."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from replybot.errors import GatewayError
from replybot.gateway.base import MessagingGateway, RawMessageRecord


def extract_text(message: dict[str, Any] | None) -> str:
    """Pull plain text out of an Evolution ``message`` object."""
    if not isinstance(message, dict):
        return ""
    text = message.get("conversation")
    if isinstance(text, str) and text:
        return text
    extended = message.get("extendedTextMessage")
    if isinstance(extended, dict):
        text = extended.get("text")
        if isinstance(text, str):
            return text
    return ""


def _epoch_seconds(value: Any) -> int | None:
    # Evolution sends messageTimestamp as a number or a numeric string
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None


class EvolutionGateway(MessagingGateway):
    """Talks to an Evolution API server over HTTP."""

    def __init__(
        self,
        api_url: str = "http://api:8080",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _post(self, url: str, credentials: str, body: dict[str, Any]) -> Any:
        logger.debug(f"POST {url}")
        try:
            response = await self._get_client().post(
                url,
                headers={"Content-Type": "application/json", "apikey": credentials},
                json=body,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Evolution API error {status} for {url}: {e.response.text[:200]}")
            raise GatewayError(
                f"Error during POST request to {url}",
                url=url,
                method="POST",
                status=status,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Evolution API request to {url} failed: {e}")
            raise GatewayError(
                f"Error during POST request to {url}: {e}",
                url=url,
                method="POST",
            ) from e
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def fetch_history(
        self,
        instance: str,
        key: str,
        credentials: str,
        limit: int = 10,
    ) -> list[RawMessageRecord]:
        url = f"{self.api_url}/chat/findMessages/{instance}"
        data = await self._post(
            url,
            credentials,
            {"where": {"key": {"remoteJid": key}}, "page": 1, "offset": limit},
        )
        return self._parse_records(data)

    @staticmethod
    def _parse_records(data: Any) -> list[RawMessageRecord]:
        if isinstance(data, dict):
            messages = data.get("messages")
            records = messages.get("records") if isinstance(messages, dict) else None
        elif isinstance(data, list):
            records = data
        else:
            records = None
        if not isinstance(records, list):
            raise GatewayError("Unexpected findMessages response shape")

        parsed: list[RawMessageRecord] = []
        for record in records:
            if not isinstance(record, dict):
                continue
            key = record.get("key") if isinstance(record.get("key"), dict) else {}
            parsed.append(
                RawMessageRecord(
                    id=str(key.get("id") or record.get("id") or ""),
                    from_me=bool(key.get("fromMe")),
                    text=extract_text(record.get("message")),
                    timestamp=_epoch_seconds(record.get("messageTimestamp")),
                )
            )
        return parsed

    async def send_text(
        self,
        instance: str,
        number: str,
        credentials: str,
        text: str,
    ) -> None:
        url = f"{self.api_url}/message/sendText/{instance}"
        await self._post(url, credentials, {"number": number, "text": text})
        logger.info(f"Message sent to {number} via {instance}")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
