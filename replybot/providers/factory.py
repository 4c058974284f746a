"""Provider factory to keep provider selection isolated from CLI logic."""

from __future__ import annotations

import os

from loguru import logger

from replybot.config.schema import Config
from replybot.providers.openai_compat import OpenAICompatibleProvider

API_KEY_ENV_VARS = ("REPLYBOT_API_KEY", "DEEPSEEK_API_KEY", "OPENAI_API_KEY")


def _api_key_from_env() -> str:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            logger.debug(f"Using model API key from {name}")
            return value
    return ""


def create_provider(config: Config) -> OpenAICompatibleProvider:
    """Create the model provider from config."""
    p = config.provider
    api_key = p.api_key.strip() or _api_key_from_env()
    if not api_key:
        raise RuntimeError(
            "No API key configured. Set provider.apiKey in ~/.replybot/config.json "
            "or export DEEPSEEK_API_KEY"
        )

    return OpenAICompatibleProvider(
        api_key=api_key,
        api_base=p.api_base,
        default_model=config.agent.model,
        timeout_seconds=p.timeout_seconds,
        extra_headers=p.extra_headers,
    )
