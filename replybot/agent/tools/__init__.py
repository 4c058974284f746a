"""Agent tools module."""

from __future__ import annotations

import httpx

from replybot.agent.tools.base import Tool
from replybot.agent.tools.plans import CreatePlanTool, ListPlansTool, PlansApi
from replybot.agent.tools.registry import ToolRegistry
from replybot.config.schema import ToolsConfig


def register_default_tools(
    registry: ToolRegistry,
    config: ToolsConfig,
    client: httpx.AsyncClient | None = None,
) -> ToolRegistry:
    """Register the plan tools, skipping any listed in ``config.disabled``."""
    api = PlansApi(base_url=config.api_base_url, timeout=config.timeout_seconds, client=client)
    for tool in (ListPlansTool(api), CreatePlanTool(api)):
        if tool.name not in config.disabled:
            registry.register(tool)
    return registry


__all__ = [
    "CreatePlanTool",
    "ListPlansTool",
    "PlansApi",
    "Tool",
    "ToolRegistry",
    "register_default_tools",
]
