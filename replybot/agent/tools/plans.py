"""Plan management tools backed by the business HTTP API."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from replybot.agent.tools.base import Tool
from replybot.errors import ToolError


def reais_to_cents(value: float) -> int:
    return int(round(float(value) * 100))


def cents_to_reais(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return value / 100


class PlansApi:
    """Thin async client for the ``/plans`` resource."""

    def __init__(
        self,
        base_url: str = "http://localhost:3333",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._get_client().request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ToolError(
                f"{method} {path} returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise ToolError(f"{method} {path} failed: {e}") from e
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class ListPlansTool(Tool):
    """Lists plans, converting prices from cents to reais."""

    def __init__(self, api: PlansApi):
        self._api = api

    async def close(self) -> None:
        await self._api.close()

    @property
    def name(self) -> str:
        return "get_plans"

    @property
    def description(self) -> str:
        return (
            "List the available barber shop plans. Always call this when the user "
            "asks to see, list or check plans instead of answering directly."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "page": {"type": "number", "description": "Page number (default 1)", "minimum": 1},
                "limit": {"type": "number", "description": "Items per page (default 10)", "minimum": 1},
            },
            "required": [],
        }

    async def execute(self, page: int | float = 1, limit: int | float = 10, **kwargs: Any) -> Any:
        page, limit = int(page or 1), int(limit or 10)
        logger.info(f"Listing plans (page {page}, limit {limit})")
        data = await self._api.request("GET", "/plans", params={"page": page, "limit": limit})
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = {
                **data,
                "data": [
                    {**plan, "price": cents_to_reais(plan.get("price"))} if isinstance(plan, dict) else plan
                    for plan in data["data"]
                ],
            }
        return data


class CreatePlanTool(Tool):
    """Creates a plan; the price is given in reais and stored in cents."""

    def __init__(self, api: PlansApi):
        self._api = api

    async def close(self) -> None:
        await self._api.close()

    @property
    def name(self) -> str:
        return "create_plan"

    @property
    def description(self) -> str:
        return (
            "Create a new barber shop plan. Always call this when the user asks "
            "to create a plan instead of answering directly."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": 'Plan name, e.g. "Premium"', "minLength": 1},
                "description": {"type": "string", "description": "What the plan includes"},
                "price": {"type": "number", "description": "Price in reais, e.g. 99.99", "minimum": 0},
                "duration": {"type": "number", "description": "Duration in days, e.g. 30", "minimum": 1},
                "isActive": {"type": "boolean", "description": "Whether clients can subscribe"},
            },
            "required": ["name", "description", "price", "duration", "isActive"],
        }

    async def execute(
        self,
        name: str,
        description: str,
        price: float,
        duration: int | float,
        isActive: bool,
        **kwargs: Any,
    ) -> Any:
        cents = reais_to_cents(price)
        logger.info(f"Creating plan {name!r}: R$ {cents / 100:.2f} ({cents} cents), {int(duration)} days")
        body = {
            "name": name,
            "description": description,
            "price": cents,
            "duration": int(duration),
            "isActive": isActive,
        }
        return await self._api.request("POST", "/plans", json=body)
