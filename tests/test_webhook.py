import pytest
from fastapi.testclient import TestClient

from replybot.agent.loop import AgentLoop
from replybot.agent.tools.registry import ToolRegistry
from replybot.config.schema import Config, WebhookConfig
from replybot.providers.base import LLMProvider, LLMResponse
from replybot.webhook.app import create_app
from replybot.webhook.router import WebhookRouter, parse_messages_upsert


class StaticProvider(LLMProvider):
    def get_default_model(self) -> str:
        return "test/default"

    async def chat(self, messages, tools=None, model=None, max_tokens=1000, temperature=0.7, tool_choice="auto"):
        return LLMResponse(content="ok")


class RecordingAgent:
    def __init__(self):
        self.ingested = []

    def ingest(self, msg):
        self.ingested.append(msg)


def _payload(**overrides):
    data = {
        "key": {"remoteJid": "5511999990000@s.whatsapp.net", "fromMe": False, "id": "ABC123"},
        "pushName": "Maria",
        "message": {"conversation": "Quero ver os planos"},
        "messageTimestamp": 1717000000,
    }
    data.update(overrides.pop("data", {}))
    payload = {"event": "messages.upsert", "instance": "barber", "apikey": "evo-key", "data": data}
    payload.update(overrides)
    return payload


def test_parse_messages_upsert():
    msg = parse_messages_upsert(_payload())

    assert msg.key == "5511999990000@s.whatsapp.net"
    assert msg.text == "Quero ver os planos"
    assert msg.instance == "barber"
    assert msg.credentials == "evo-key"
    assert msg.message_id == "ABC123"
    assert msg.push_name == "Maria"
    assert msg.timestamp.year >= 2024


def test_parse_extended_text():
    msg = parse_messages_upsert(_payload(data={"message": {"extendedTextMessage": {"text": "veja isso"}}}))
    assert msg.text == "veja isso"


@pytest.mark.parametrize(
    "data",
    [
        {"key": {"remoteJid": "5511@s.whatsapp.net", "fromMe": True, "id": "1"}},
        {"key": {"remoteJid": "1203630@g.us", "fromMe": False, "id": "1"}},
        {"key": {"remoteJid": "status@broadcast", "fromMe": False, "id": "1"}},
        {"message": {"imageMessage": {"url": "x"}}},
        {"key": "ABC123"},
        {"key": None},
    ],
)
def test_parse_skips_own_group_and_media_messages(data):
    assert parse_messages_upsert(_payload(data=data)) is None


def test_router_handles_upper_case_event_and_ignores_others():
    agent = RecordingAgent()
    router = WebhookRouter(agent)

    assert router.route(_payload(event="MESSAGES_UPSERT")) == "buffered"
    assert router.route(_payload(event="connection.update")) == "ignored"
    assert router.route(_payload(data={"key": {"remoteJid": "x@g.us", "id": "2"}})) == "skipped"
    assert len(agent.ingested) == 1


def _agent(gateway, scheduler):
    return AgentLoop(
        provider=StaticProvider(),
        gateway=gateway,
        config=Config(),
        tools=ToolRegistry(),
        scheduler=scheduler,
        clock=scheduler.clock,
    )


def test_webhook_endpoint_buffers_message(gateway, scheduler):
    agent = _agent(gateway, scheduler)
    client = TestClient(create_app(agent, WebhookConfig(path="/evolution")))

    response = client.post("/evolution", json=_payload())

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "buffered"}
    assert "5511999990000@s.whatsapp.net" in agent.store
    assert scheduler.pending == 1


def test_webhook_rejects_non_object_body(gateway, scheduler):
    client = TestClient(create_app(_agent(gateway, scheduler)))

    assert client.post("/webhook", json=[1, 2]).status_code == 400
    assert client.post("/webhook", content=b"{oops", headers={"content-type": "application/json"}).status_code == 400


def test_health_reports_buffer_stats(gateway, scheduler):
    client = TestClient(create_app(_agent(gateway, scheduler)))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "total_buffers": 0, "active_buffers": 0, "in_flight": 0}


def test_webhook_skips_message_with_malformed_key(gateway, scheduler):
    agent = _agent(gateway, scheduler)
    client = TestClient(create_app(agent))

    response = client.post("/webhook", json=_payload(data={"key": "ABC123"}))

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "skipped"}
    assert len(agent.store) == 0
