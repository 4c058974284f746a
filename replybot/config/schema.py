"""Configuration schema using Pydantic."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_SYSTEM_PROMPT = (
    "You are Luna, a friendly and helpful virtual assistant for a barber shop. "
    "You have access to functions to help with plan management. "
    "When the user asks to list, see or show plans, call the get_plans function. "
    "When the user wants to create a new plan or provides plan details, call the "
    "create_plan function. For greetings and general conversation, respond naturally "
    "without calling any functions. Never describe functions or what you will do; "
    "just call the appropriate function when needed. Be polite, friendly and concise."
)


class Base(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BufferConfig(Base):
    """Debounce buffer settings."""

    inactivity_seconds: float = Field(default=10.0, gt=0)
    merge_mode: Literal["replace", "concat"] = "replace"
    reap_factor: float = Field(default=2.0, ge=1.0)
    reap_interval_seconds: float = Field(default=60.0, gt=0)


class ContextConfig(Base):
    """Conversation history settings."""

    fetch_limit: int = Field(default=10, ge=0)
    max_turns: int = Field(default=5, ge=0)


class AgentConfig(Base):
    """Model round-trip settings."""

    model: str = "deepseek-chat"
    max_tokens: int = Field(default=1000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_rounds: int = Field(default=5, ge=1)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    fallback_text: str = "Desculpe, ocorreu um erro ao processar sua mensagem."
    empty_reply_text: str = "Desculpe, não consegui processar sua mensagem."


class ProviderConfig(Base):
    """OpenAI-compatible model endpoint."""

    api_key: str = ""
    api_base: str = "https://api.deepseek.com"
    timeout_seconds: float = 60.0
    extra_headers: dict[str, str] | None = None


class GatewayConfig(Base):
    """Evolution API gateway."""

    url: str = "http://api:8080"
    timeout_seconds: float = 30.0

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ToolsConfig(Base):
    """Business API used by the plan tools."""

    api_base_url: str = "http://localhost:3333"
    timeout_seconds: float = 30.0
    disabled: list[str] = Field(default_factory=list)


class WebhookConfig(Base):
    """Webhook HTTP server."""

    host: str = "0.0.0.0"
    port: int = 18790
    path: str = "/webhook"

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"


class Config(Base):
    """Root configuration for replybot."""

    buffer: BufferConfig = Field(default_factory=BufferConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
