"""Configuration loading utilities."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from replybot.config.schema import Config

CONFIG_ENV_VAR = "REPLYBOT_CONFIG"


def get_data_dir() -> Path:
    return Path.home() / ".replybot"


def get_config_path() -> Path:
    """Return the config file path, honouring REPLYBOT_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_data_dir() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, or return defaults.

    Invalid or unreadable files are reported and replaced by defaults.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            data = _migrate_config(data)
            return Config.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Write ``config`` as camelCase JSON."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(by_alias=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _migrate_config(data: dict[str, Any]) -> dict[str, Any]:
    """Rewrite legacy keys into the current layout."""
    buffer = data.get("buffer")
    if isinstance(buffer, dict) and "inactivityTimeoutMs" in buffer:
        timeout_ms = buffer.pop("inactivityTimeoutMs")
        if "inactivitySeconds" not in buffer and isinstance(timeout_ms, (int, float)):
            buffer["inactivitySeconds"] = timeout_ms / 1000

    if "deepseekApiKey" in data:
        api_key = data.pop("deepseekApiKey")
        provider = data.setdefault("provider", {})
        if isinstance(provider, dict) and not provider.get("apiKey"):
            provider["apiKey"] = api_key

    return data
