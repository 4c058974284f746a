"""FastAPI application receiving gateway webhooks."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from loguru import logger
from pydantic import BaseModel

from replybot import __version__
from replybot.agent.loop import AgentLoop
from replybot.config.schema import WebhookConfig
from replybot.webhook.router import WebhookRouter


class WebhookResponse(BaseModel):
    success: bool
    status: str


def create_app(agent: AgentLoop, config: WebhookConfig | None = None) -> FastAPI:
    """Build the webhook app. The agent loop starts and stops with the app."""
    config = config or WebhookConfig()
    router = WebhookRouter(agent)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        agent.start()
        try:
            yield
        finally:
            await agent.close()

    app = FastAPI(title="replybot", version=__version__, lifespan=lifespan)

    @app.post(config.path, response_model=WebhookResponse)
    async def handle_webhook(request: Request) -> WebhookResponse:
        try:
            payload: Any = await request.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Expected a JSON object")

        result = router.route(payload)
        logger.debug(f"Webhook {payload.get('event')}: {result}")
        return WebhookResponse(success=True, status=result)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, **agent.stats()}

    return app
