import asyncio
import json

import pytest

from replybot.agent.orchestrator import OrchestratorState, ToolOrchestrator
from replybot.agent.tools.base import Tool
from replybot.agent.tools.registry import ToolRegistry
from replybot.errors import ProviderError, ToolError
from replybot.events import ConversationTurn, ToolInvocation
from replybot.providers.base import LLMProvider, LLMResponse


class ScriptedProvider(LLMProvider):
    def __init__(self, responses=None):
        super().__init__()
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def get_default_model(self) -> str:
        return "test/default"

    async def chat(self, messages, tools=None, model=None, max_tokens=1000, temperature=0.7, tool_choice="auto"):
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "tools": tools,
            "model": model,
            "tool_choice": tool_choice,
        })
        if self.responses:
            nxt = self.responses.pop(0)
            if isinstance(nxt, Exception):
                raise nxt
            return nxt
        return LLMResponse(content="ok")


class EchoTool(Tool):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo the given text."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        }

    async def execute(self, text: str, **kwargs):
        self.calls.append({"text": text})
        if self.fail:
            raise ToolError("backend down")
        return {"echo": text}


def _tool_call(i: int, text: str = "x") -> LLMResponse:
    return LLMResponse(
        content=None,
        tool_calls=[ToolInvocation(call_id=f"call_{i}", name="echo", arguments={"text": text})],
    )


def _orchestrator(provider, tool=None, max_rounds=5):
    registry = ToolRegistry()
    registry.register(tool or EchoTool())
    return ToolOrchestrator(
        provider=provider,
        tools=registry,
        system_prompt="You are Luna.",
        max_rounds=max_rounds,
        fallback_text="fallback",
        empty_reply_text="empty",
    )


def test_build_messages_orders_system_history_user():
    orch = _orchestrator(ScriptedProvider())
    history = [ConversationTurn("user", "Oi"), ConversationTurn("assistant", "Olá!")]

    messages = orch.build_messages(history, "planos?")

    assert messages == [
        {"role": "system", "content": "You are Luna."},
        {"role": "user", "content": "Oi"},
        {"role": "assistant", "content": "Olá!"},
        {"role": "user", "content": "planos?"},
    ]


@pytest.mark.asyncio
async def test_plain_answer_in_one_round():
    provider = ScriptedProvider([LLMResponse(content="Olá! Como posso ajudar?")])
    orch = _orchestrator(provider)

    result = await orch.run([], "oi")

    assert result.state is OrchestratorState.DONE
    assert result.text == "Olá! Como posso ajudar?"
    assert result.rounds == 1
    assert provider.calls[0]["tool_choice"] == "auto"
    assert provider.calls[0]["tools"][0]["function"]["name"] == "echo"


@pytest.mark.asyncio
async def test_three_tool_rounds_then_answer():
    provider = ScriptedProvider([_tool_call(1, "a"), _tool_call(2, "b"), _tool_call(3, "c"), LLMResponse(content="done")])
    tool = EchoTool()
    orch = _orchestrator(provider, tool)

    result = await orch.run([], "go")

    assert result.state is OrchestratorState.DONE
    assert result.text == "done"
    assert result.rounds == 4
    assert [c["text"] for c in tool.calls] == ["a", "b", "c"]
    assert len(provider.calls) == 4

    last = provider.calls[-1]["messages"]
    assistant = [m for m in last if m["role"] == "assistant"]
    tool_msgs = [m for m in last if m["role"] == "tool"]
    assert [m["tool_calls"][0]["id"] for m in assistant] == ["call_1", "call_2", "call_3"]
    assert json.loads(assistant[0]["tool_calls"][0]["function"]["arguments"]) == {"text": "a"}
    assert [m["tool_call_id"] for m in tool_msgs] == ["call_1", "call_2", "call_3"]
    assert json.loads(tool_msgs[0]["content"]) == {"echo": "a"}


@pytest.mark.asyncio
async def test_multiple_calls_in_one_round_run_in_order():
    response = LLMResponse(
        content=None,
        tool_calls=[
            ToolInvocation(call_id="c1", name="echo", arguments={"text": "first"}),
            ToolInvocation(call_id="c2", name="echo", arguments={"text": "second"}),
        ],
    )
    provider = ScriptedProvider([response, LLMResponse(content="ok")])
    tool = EchoTool()
    orch = _orchestrator(provider, tool)

    result = await orch.run([], "go")

    assert [c["text"] for c in tool.calls] == ["first", "second"]
    second_call = provider.calls[1]["messages"]
    assert [m["role"] for m in second_call[-3:]] == ["assistant", "tool", "tool"]
    assert result.tools_used == ["echo", "echo"]


@pytest.mark.asyncio
async def test_round_ceiling_stops_model_calls():
    provider = ScriptedProvider([_tool_call(i) for i in range(10)])
    tool = EchoTool()
    orch = _orchestrator(provider, tool, max_rounds=3)

    result = await orch.run([], "loop forever")

    assert result.state is OrchestratorState.EXCEEDED
    assert result.text == "fallback"
    assert len(provider.calls) == 3
    assert len(tool.calls) == 2


@pytest.mark.asyncio
async def test_tool_failure_is_fed_back_to_model():
    provider = ScriptedProvider([_tool_call(1), LLMResponse(content="Desculpe, tente mais tarde.")])
    orch = _orchestrator(provider, EchoTool(fail=True))

    result = await orch.run([], "create")

    assert result.state is OrchestratorState.DONE
    assert result.tool_results[0].success is False
    tool_msg = provider.calls[1]["messages"][-1]
    assert tool_msg["role"] == "tool"
    assert "backend down" in tool_msg["content"]


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_not_raised():
    response = LLMResponse(content=None, tool_calls=[ToolInvocation(call_id="c1", name="missing", arguments={})])
    provider = ScriptedProvider([response, LLMResponse(content="ok")])
    orch = _orchestrator(provider)

    result = await orch.run([], "x")

    assert result.text == "ok"
    assert result.tool_results[0].success is False
    assert "not found" in result.tool_results[0].payload


@pytest.mark.asyncio
async def test_empty_answer_uses_empty_reply_text():
    provider = ScriptedProvider([LLMResponse(content="<think>hmm</think>")])
    orch = _orchestrator(provider)

    result = await orch.run([], "x")

    assert result.state is OrchestratorState.DONE
    assert result.text == "empty"


@pytest.mark.asyncio
async def test_provider_error_propagates():
    provider = ScriptedProvider([ProviderError("503")])
    orch = _orchestrator(provider)

    with pytest.raises(ProviderError):
        await orch.run([], "x")


def test_max_rounds_must_be_positive():
    with pytest.raises(ValueError):
        _orchestrator(ScriptedProvider(), max_rounds=0)


@pytest.mark.asyncio
async def test_concurrent_runs_do_not_share_messages():
    provider = ScriptedProvider([LLMResponse(content="a"), LLMResponse(content="b")])
    orch = _orchestrator(provider)

    results = await asyncio.gather(orch.run([], "one"), orch.run([], "two"))

    assert sorted(r.text for r in results) == ["a", "b"]
    assert provider.calls[0]["messages"][-1]["content"] == "one"
    assert provider.calls[1]["messages"][-1]["content"] == "two"
