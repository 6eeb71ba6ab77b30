from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from huddle.agent.orchestrator import TurnReply
from huddle.bus import ChatMode, MessageBus
from huddle.gateway import create_gateway_app
from huddle.notify import GENERIC_FAILURE, ConnectionHub, NotificationEvent
from huddle.notify.errors import TemporaryNotificationError
from huddle.personas import build_persona_registry
from huddle.storage import HuddleStore
from huddle.utils.helpers import normalize_session_id

TOKEN = "test-token"


class _DummyOrchestrator:
    def __init__(self, fail: bool = False) -> None:
        self.personas = build_persona_registry()
        self.calls = []
        self.fail = fail

    async def handle(self, inbound):
        self.calls.append(inbound)
        if self.fail:
            raise RuntimeError("model unavailable")
        return [
            TurnReply("Yasmin", f"echo:{inbound.body}", 1),
            TurnReply("Rishi", "on it", 2),
        ]


def _auth(token: str = TOKEN) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _client(tmp_path: Path, orchestrator=None, bus=None) -> tuple[TestClient, _DummyOrchestrator, HuddleStore]:
    orchestrator = orchestrator or _DummyOrchestrator()
    store = HuddleStore(tmp_path / "huddle.db")
    app = create_gateway_app(orchestrator, store, ConnectionHub(), TOKEN, bus=bus)
    return TestClient(app), orchestrator, store


def test_normalize_session_id() -> None:
    assert normalize_session_id("my session") == "my-session"
    assert normalize_session_id("a/b?c") == "a-b-c"
    assert normalize_session_id("") == "default"


def test_health_lists_personas(tmp_path: Path) -> None:
    client, _, _ = _client(tmp_path)
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "personas": ["Harper", "Eric", "Rishi", "Yasmin"]}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": TOKEN}])
def test_chat_turn_requires_token(tmp_path: Path, headers) -> None:
    client, orchestrator, _ = _client(tmp_path)
    res = client.post("/chat/turn", headers=headers, json={"message": "hi", "senderId": "u1"})
    assert res.status_code == 401
    assert orchestrator.calls == []


def test_chat_turn_returns_every_reply(tmp_path: Path) -> None:
    client, orchestrator, _ = _client(tmp_path)

    res = client.post(
        "/chat/turn",
        headers=_auth(),
        json={
            "message": "Hey Yasmin, hello",
            "sessionId": "my session",
            "senderId": "u1",
            "chatMode": "standard",
            "sendersWalletAddress": "0xabc",
        },
    )

    assert res.status_code == 200
    body = res.json()
    assert body["sessionId"] == "my-session"
    assert body["replies"] == [
        {"characterId": "Yasmin", "message": "echo:Hey Yasmin, hello", "depth": 1},
        {"characterId": "Rishi", "message": "on it", "depth": 2},
    ]
    inbound = orchestrator.calls[0]
    assert inbound.chat_mode is ChatMode.STANDARD
    assert inbound.sender_wallet == "0xabc"
    assert inbound.persona_id == "Yasmin"


@pytest.mark.parametrize(
    "payload",
    [
        {"senderId": "u1"},
        {"message": "   ", "senderId": "u1"},
        {"message": "hi"},
        {"message": "hi", "senderId": "u1", "chatMode": "chaotic"},
    ],
)
def test_chat_turn_rejects_bad_payloads(tmp_path: Path, payload) -> None:
    client, orchestrator, _ = _client(tmp_path)
    res = client.post("/chat/turn", headers=_auth(), json=payload)
    assert res.status_code == 400
    assert orchestrator.calls == []


def test_chat_turn_failure_returns_generic_message(tmp_path: Path) -> None:
    client, _, _ = _client(tmp_path, orchestrator=_DummyOrchestrator(fail=True))
    res = client.post("/chat/turn", headers=_auth(), json={"message": "hi", "senderId": "u1"})
    assert res.status_code == 500
    assert res.json()["detail"] == GENERIC_FAILURE


def test_chat_send_without_bus_is_unavailable(tmp_path: Path) -> None:
    client, _, _ = _client(tmp_path)
    res = client.post("/chat/send", headers=_auth(), json={"message": "hi", "senderId": "u1"})
    assert res.status_code == 503


def test_chat_send_queues_message(tmp_path: Path) -> None:
    bus = MessageBus()
    client, orchestrator, _ = _client(tmp_path, bus=bus)

    res = client.post("/chat/send", headers=_auth(), json={"message": "hi", "senderId": "u1", "sessionId": "s1"})

    assert res.status_code == 202
    assert res.json() == {"ok": True, "sessionId": "s1", "queued": True}
    assert bus.inbound_size == 1
    assert orchestrator.calls == []


def test_session_messages(tmp_path: Path) -> None:
    client, _, store = _client(tmp_path)

    async def seed() -> None:
        await store.append_message("s1", "u1", "hello", created_by="u1", character_id="Yasmin")
        await store.append_message("s1", "Yasmin", "hi there", created_by="u1", character_id="Yasmin")

    asyncio.run(seed())

    res = client.get("/sessions/s1/messages?limit=10", headers=_auth())

    assert res.status_code == 200
    messages = res.json()["messages"]
    assert [(m["author"], m["message"]) for m in messages] == [("u1", "hello"), ("Yasmin", "hi there")]
    assert all(m["characterId"] == "Yasmin" for m in messages)


def test_websocket_rejects_bad_token(tmp_path: Path) -> None:
    client, _, _ = _client(tmp_path)
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws?sessionId=s1&token=nope") as ws:
            ws.receive_text()
    assert exc.value.code == 1008


@pytest.mark.asyncio
async def test_hub_routes_text_by_persona_and_events_to_god_channel() -> None:
    hub = ConnectionHub()
    eric: list[str] = []
    god: list[str] = []

    async def to_eric(data: str) -> None:
        eric.append(data)

    async def to_god(data: str) -> None:
        god.append(data)

    await hub.register("s1", "Eric", to_eric)
    await hub.register("s1", "god", to_god)

    await hub.send_text("s1", "eric", "hold for now")
    await hub.send_text("s1", "Harper", "nobody is watching me")
    await hub.send_event(
        "s1",
        NotificationEvent(created_by="u1", character_id="Rishi", event_name="wallet_created", metadata={}),
    )

    assert [json.loads(d)["message"] for d in eric] == ["hold for now"]
    event = json.loads(god[0])["event"]
    assert event["eventName"] == "wallet_created"
    assert event["characterId"] == "Rishi"


@pytest.mark.asyncio
async def test_hub_prunes_dead_viewers() -> None:
    hub = ConnectionHub()

    async def dead(data: str) -> None:
        raise ConnectionError("closed")

    await hub.register("s1", "Eric", dead)
    with pytest.raises(TemporaryNotificationError):
        await hub.send_text("s1", "Eric", "anyone?")
    assert hub.connection_count("s1", "Eric") == 0


@pytest.mark.asyncio
async def test_hub_stalled_viewer_does_not_hold_up_others() -> None:
    hub = ConnectionHub(send_timeout=0.05)
    healthy: list[str] = []

    async def stalled(data: str) -> None:
        await asyncio.Event().wait()

    async def live(data: str) -> None:
        healthy.append(data)

    await hub.register("s1", "Harper", stalled)
    await hub.register("s1", "Harper", live)

    await asyncio.wait_for(hub.send_text("s1", "Harper", "bought"), timeout=1.0)

    assert [json.loads(d)["message"] for d in healthy] == ["bought"]
    assert hub.connection_count("s1", "Harper") == 1

    await hub.send_text("s1", "Harper", "again")
    assert len(healthy) == 2
