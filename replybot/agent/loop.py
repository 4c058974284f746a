"""Agent loop: the core processing engine."""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from loguru import logger

from replybot.agent.context import ContextFetcher
from replybot.agent.dispatcher import Dispatcher
from replybot.agent.orchestrator import OrchestratorState, ToolOrchestrator
from replybot.agent.tools import ToolRegistry, register_default_tools
from replybot.buffer.reaper import BufferReaper
from replybot.buffer.scheduler import AsyncioScheduler, Scheduler
from replybot.buffer.store import BufferStore, ConversationBuffer
from replybot.config.schema import Config
from replybot.errors import DispatchError
from replybot.events import ConversationKey, InboundMessage
from replybot.gateway.base import MessagingGateway
from replybot.providers.base import LLMProvider


class AgentLoop:
    """
    The agent loop is the core processing engine.

    It:
    1. Buffers inbound messages per conversation
    2. Waits for the sender to go quiet
    3. Loads recent history from the gateway
    4. Runs the model with tools until it answers
    5. Sends exactly one reply back
    """

    def __init__(
        self,
        provider: LLMProvider,
        gateway: MessagingGateway,
        config: Config | None = None,
        tools: ToolRegistry | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or Config()
        self.provider = provider
        self.gateway = gateway
        if tools is None:
            tools = register_default_tools(ToolRegistry(), self.config.tools)
        self.tools = tools

        buf = self.config.buffer
        self.store = BufferStore(
            scheduler=scheduler or AsyncioScheduler(),
            on_due=self._on_flush_due,
            inactivity_seconds=buf.inactivity_seconds,
            merge_mode=buf.merge_mode,
            clock=clock,
        )
        self.context = ContextFetcher(
            gateway,
            fetch_limit=self.config.context.fetch_limit,
            max_turns=self.config.context.max_turns,
        )
        agent = self.config.agent
        self.orchestrator = ToolOrchestrator(
            provider=provider,
            tools=self.tools,
            system_prompt=agent.system_prompt,
            model=agent.model,
            max_tokens=agent.max_tokens,
            temperature=agent.temperature,
            max_rounds=agent.max_rounds,
            fallback_text=agent.fallback_text,
            empty_reply_text=agent.empty_reply_text,
        )
        self.dispatcher = Dispatcher(gateway)
        self.reaper = BufferReaper(
            self.store,
            factor=buf.reap_factor,
            interval_seconds=buf.reap_interval_seconds,
        )
        self._tasks: set[asyncio.Task] = set()
        self._reaper_task: asyncio.Task | None = None

    def ingest(self, msg: InboundMessage) -> ConversationBuffer:
        """Buffer an inbound message; the reply is produced after the quiet window."""
        preview = msg.text[:80] + "..." if len(msg.text) > 80 else msg.text
        logger.info(f"Inbound message from {msg.key}: {preview}")
        return self.store.ingest(msg)

    def _on_flush_due(self, key: ConversationKey, generation: int) -> None:
        task = asyncio.get_running_loop().create_task(self._process_flush(key, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_flush(self, key: ConversationKey, generation: int) -> None:
        """Answer one flushed buffer. Always ends in a single send attempt."""
        unit = self.store.flush(key, generation)
        if unit is None:
            return

        try:
            history = await self.context.load(key, unit.texts, unit.origin)
            result = await self.orchestrator.run(history, unit.text)
            reply = result.text
            if result.state is OrchestratorState.EXCEEDED:
                logger.warning(f"Conversation {key} hit the tool round limit")
            logger.debug(
                f"Conversation {key}: {result.state.value} after {result.rounds} round(s), "
                f"tools={result.tools_used}"
            )
        except Exception as e:
            logger.error(f"Error processing buffered message for {key}: {e}")
            reply = self.config.agent.fallback_text

        try:
            await self.dispatcher.send(key, unit.origin, reply)
        except DispatchError as e:
            logger.error(str(e))

    async def process_direct(self, content: str) -> str:
        """Answer ``content`` without history or buffering (CLI usage)."""
        result = await self.orchestrator.run([], content)
        return result.text

    def start(self) -> None:
        """Start the periodic reaper. Requires a running event loop."""
        if self._reaper_task is None or self._reaper_task.done():
            self._reaper_task = asyncio.get_running_loop().create_task(self.reaper.run())
            logger.info("Agent loop started")

    async def drain(self) -> None:
        """Wait for every in-flight flush to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel timers, the reaper and in-flight flushes."""
        logger.info("Agent loop stopping")
        self.store.cancel_all()
        self.reaper.stop()
        pending = list(self._tasks)
        if self._reaper_task is not None:
            pending.append(self._reaper_task)
            self._reaper_task = None
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def close(self) -> None:
        """Stop processing and release the tools, gateway and provider clients."""
        await self.stop()
        await self.tools.close()
        await self.gateway.close()
        await self.provider.close()

    def stats(self) -> dict[str, int]:
        return {**self.store.stats(), "in_flight": len(self._tasks)}
