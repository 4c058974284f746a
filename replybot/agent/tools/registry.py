"""Tool registry for dynamic tool management."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from replybot.agent.tools.base import Tool
from replybot.events import ToolResult


def stringify_payload(value: Any) -> str:
    """Render a tool return value as the text sent back to the model."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


class ToolRegistry:
    """
    Registry for agent tools.

    Lists tool schemas for the model and executes requested calls. Every
    failure is returned as an unsuccessful ToolResult, never raised.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def list_schemas(self) -> list[dict[str, Any]]:
        """Get all tool definitions in OpenAI format."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: dict[str, Any], call_id: str = "") -> ToolResult:
        """Execute a tool by name and wrap the outcome."""
        tool = self._tools.get(name)
        if not tool:
            available = ", ".join(self.tool_names) or "(none)"
            logger.warning(f"Model requested unknown tool {name!r}")
            return ToolResult(
                call_id=call_id,
                success=False,
                payload=f"Error: Tool '{name}' not found. Available: {available}",
            )

        try:
            errors = tool.validate_params(arguments)
            if errors:
                return ToolResult(
                    call_id=call_id,
                    success=False,
                    payload=f"Error: Invalid parameters for tool '{name}': " + "; ".join(errors),
                )
            result = await tool.execute(**arguments)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult(
                call_id=call_id,
                success=False,
                payload=f"Error executing {name}: {e}",
            )
        return ToolResult(call_id=call_id, success=True, payload=stringify_payload(result))

    @property
    def tool_names(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._tools.keys())

    async def close(self) -> None:
        """Close every registered tool; a failing close is logged and skipped."""
        for tool in self._tools.values():
            try:
                await tool.close()
            except Exception as e:
                logger.warning(f"Error closing tool {tool.name}: {e}")
