"""Agent core module."""

from replybot.agent.context import ContextFetcher
from replybot.agent.dispatcher import Dispatcher
from replybot.agent.loop import AgentLoop
from replybot.agent.orchestrator import OrchestratorResult, OrchestratorState, ToolOrchestrator

__all__ = [
    "AgentLoop",
    "ContextFetcher",
    "Dispatcher",
    "OrchestratorResult",
    "OrchestratorState",
    "ToolOrchestrator",
]
