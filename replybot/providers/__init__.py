"""LLM provider abstraction module."""

from replybot.providers.base import LLMProvider, LLMResponse
from replybot.providers.factory import create_provider
from replybot.providers.openai_compat import OpenAICompatibleProvider

__all__ = ["LLMProvider", "LLMResponse", "OpenAICompatibleProvider", "create_provider"]
