"""
Test suite for the HTTP surface (/api/*) and the /ws observer endpoint.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from aiohttp.test_utils import TestClient, TestServer

from tests.fakes import FakeTransport
from whatsrelay.core.relay import SessionRelay
from whatsrelay.core.transport import ChatSummary
from whatsrelay.webapi import create_app


@pytest.fixture
async def client(relay: SessionRelay) -> AsyncGenerator[TestClient, None]:
    client = TestClient(TestServer(create_app(relay)))
    await client.start_server()
    yield client
    await client.close()


async def _make_ready(relay: SessionRelay, transport: FakeTransport) -> None:
    transport.sink.on_ready()
    await relay.flush()


class TestStatusEndpoint:
    @pytest.mark.asyncio
    async def test_status_before_ready(self, client: TestClient) -> None:
        resp = await client.get("/api/status")
        assert resp.status == 200
        data = await resp.json()
        assert data["ready"] is False
        assert data["state"] == "initializing"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_status_after_ready(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        data = await (await client.get("/api/status")).json()
        assert data["ready"] is True


class TestSendMessageEndpoint:
    @pytest.mark.asyncio
    async def test_send_json(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)

        resp = await client.post(
            "/api/send-message", json={"phoneNumber": "15551234567", "message": "hi"}
        )

        assert resp.status == 200
        assert await resp.json() == {"success": True, "messageId": "MSG1"}
        assert transport.sent == [("+15551234567@c.us", "hi")]

    @pytest.mark.asyncio
    async def test_send_form(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)

        resp = await client.post(
            "/api/send-message", data={"phoneNumber": "+15551234567", "message": "form"}
        )

        assert resp.status == 200
        assert transport.replies == ["form"]

    @pytest.mark.asyncio
    async def test_not_ready(self, client: TestClient, transport: FakeTransport) -> None:
        resp = await client.post(
            "/api/send-message", json={"phoneNumber": "15551234567", "message": "hi"}
        )
        assert resp.status == 400
        assert await resp.json() == {"error": "WhatsApp client not ready"}
        assert transport.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [{"message": "hi"}, {"phoneNumber": "15551234567"}, {"phoneNumber": "x", "message": "hi"}]
    )
    async def test_invalid_input(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport, body: dict
    ) -> None:
        await _make_ready(relay, transport)
        resp = await client.post("/api/send-message", json=body)
        assert resp.status == 400
        assert "error" in await resp.json()

    @pytest.mark.asyncio
    async def test_invalid_json(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        resp = await client.post(
            "/api/send-message", data="{nope", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_transport_failure(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        transport.should_fail = True

        resp = await client.post(
            "/api/send-message", json={"phoneNumber": "15551234567", "message": "hi"}
        )

        assert resp.status == 500
        assert await resp.json() == {"error": "Failed to send message"}


class TestContactsEndpoint:
    @pytest.mark.asyncio
    async def test_contacts(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        transport.chats = [
            ChatSummary(id="1555@c.us", display_name="Alice", unread_count=2),
            ChatSummary(id="1203@g.us", display_name="Team", is_group=True),
        ]

        resp = await client.get("/api/contacts?limit=1")

        assert resp.status == 200
        assert await resp.json() == [
            {"id": "1555@c.us", "name": "Alice", "isGroup": False, "unreadCount": 2}
        ]

    @pytest.mark.asyncio
    async def test_contacts_not_ready(self, client: TestClient) -> None:
        resp = await client.get("/api/contacts")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_contacts_bad_limit(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        assert (await client.get("/api/contacts?limit=-2")).status == 400
        assert (await client.get("/api/contacts?limit=0")).status == 400

    @pytest.mark.asyncio
    async def test_contacts_failure(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        transport.should_fail = True
        resp = await client.get("/api/contacts")
        assert resp.status == 500


class TestObserverSocket:
    @pytest.mark.asyncio
    async def test_snapshot_then_live_events(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        ws = await client.ws_connect("/ws")

        first = await ws.receive_json(timeout=2)
        assert first == {"event": "status", "data": {"ready": False, "message": "WhatsApp disconnected"}}

        for _ in range(50):
            if len(relay.hub) == 1:
                break
            await asyncio.sleep(0.01)
        assert len(relay.hub) == 1

        transport.sink.on_qr("2@secret")
        transport.sink.on_ready()
        await relay.flush()

        assert await ws.receive_json(timeout=2) == {"event": "qr", "data": {"qr": "2@secret"}}
        assert await ws.receive_json(timeout=2) == {
            "event": "status",
            "data": {"ready": True, "message": "WhatsApp connected!"},
        }

        await ws.close()
        for _ in range(50):
            if len(relay.hub) == 0:
                break
            await asyncio.sleep(0.01)
        assert len(relay.hub) == 0

    @pytest.mark.asyncio
    async def test_first_frame_after_ready(
        self, client: TestClient, relay: SessionRelay, transport: FakeTransport
    ) -> None:
        await _make_ready(relay, transport)
        ws = await client.ws_connect("/ws")

        assert await ws.receive_json(timeout=2) == {
            "event": "status",
            "data": {"ready": True, "message": "WhatsApp connected!"},
        }
        await ws.close()


@pytest.mark.asyncio
async def test_preflight_request(client: TestClient) -> None:
    resp = await client.options("/api/send-message")
    assert resp.status == 204
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]
