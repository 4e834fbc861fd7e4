"""Tests for the realtime notification hub (WS /hubs/notifications).

Uses starlette's synchronous TestClient, which drives the WebSocket
endpoint in its own event loop.
"""

import asyncio
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.api.deps import get_channel
from app.main import app
from app.providers.config import ProviderConfig
from app.providers.delivery.mock_adapter import MockDeliveryChannel
from app.providers.delivery.websocket_adapter import WebSocketDeliveryChannel
from tests.conftest import TEST_USER_ID, create_test_jwt

_HUB = "/hubs/notifications"


@pytest.fixture
def ws_channel() -> Iterator[WebSocketDeliveryChannel]:
    channel = WebSocketDeliveryChannel(ProviderConfig(max_group_name_length=20))
    app.dependency_overrides[get_channel] = lambda: channel
    yield channel
    app.dependency_overrides.clear()


@pytest.fixture
def hub_client(
    ws_channel,  # noqa: ARG001 - installs the channel override
    auth_settings,  # noqa: ARG001 - enables JWT auth
) -> TestClient:
    return TestClient(app)


def _url(token: str | None = None) -> str:
    token = token if token is not None else create_test_jwt(TEST_USER_ID)
    return f"{_HUB}?access_token={token}"


class TestHandshake:
    def test_missing_token_is_rejected(self, hub_client: TestClient):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with hub_client.websocket_connect(_HUB):
                pass

        assert exc_info.value.code == 1008

    def test_invalid_token_is_rejected(self, hub_client: TestClient):
        forged = create_test_jwt(TEST_USER_ID, secret="x" * 40)

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with hub_client.websocket_connect(_url(forged)):
                pass

        assert exc_info.value.code == 1008

    def test_connection_is_registered_for_user(
        self, hub_client: TestClient, ws_channel: WebSocketDeliveryChannel
    ):
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            assert ws_channel.connection_count(TEST_USER_ID) == 1

        assert ws_channel.connection_count(TEST_USER_ID) == 0

    def test_local_mode_uses_default_user(
        self,
        ws_channel: WebSocketDeliveryChannel,
        monkeypatch: pytest.MonkeyPatch,
    ):
        from app.core.config import settings

        monkeypatch.setattr(settings, "auth_enabled", False)
        monkeypatch.setattr(settings, "default_user_id", "local-user")

        with TestClient(app).websocket_connect(_HUB) as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            assert ws_channel.connection_count("local-user") == 1

    def test_non_websocket_channel_closes_with_internal_error(
        self, auth_settings  # noqa: ARG002 - enables JWT auth
    ):
        app.dependency_overrides[get_channel] = lambda: MockDeliveryChannel()
        try:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with TestClient(app).websocket_connect(_url()):
                    pass
        finally:
            app.dependency_overrides.clear()

        assert exc_info.value.code == 1011


class TestClientMessages:
    def test_ping_pong(self, hub_client: TestClient):
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_json({"type": "ping"})
            message = ws.receive_json()

        assert message["event"] == "Pong"
        assert "timestamp" in message["payload"]

    def test_join_and_leave_group(
        self, hub_client: TestClient, ws_channel: WebSocketDeliveryChannel
    ):
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_json({"type": "join", "group": "beta"})
            joined = ws.receive_json()
            members_after_join = ws_channel.group_members("beta")

            ws.send_json({"type": "leave", "group": "beta"})
            left = ws.receive_json()

        assert joined == {"event": "JoinedGroup", "payload": {"group": "beta"}}
        assert members_after_join == 1
        assert left == {"event": "LeftGroup", "payload": {"group": "beta"}}
        assert ws_channel.group_members("beta") == 0

    @pytest.mark.parametrize(
        "message",
        [
            {"type": "join"},
            {"type": "join", "group": ""},
            {"type": "join", "group": "g" * 21},
            {"type": "dance"},
            ["not", "an", "object"],
        ],
    )
    def test_bad_messages_get_error_event(self, hub_client: TestClient, message):
        """Bad messages are answered with an Error event; the socket stays open."""
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_json(message)
            error = ws.receive_json()
            ws.send_json({"type": "ping"})
            pong = ws.receive_json()

        assert error["event"] == "Error"
        assert pong["event"] == "Pong"

    def test_non_json_text(self, hub_client: TestClient):
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_text("hello")
            error = ws.receive_json()

        assert error == {
            "event": "Error",
            "payload": {"message": "Message must be JSON"},
        }


class TestPrunedConnection:
    def test_next_message_closes_with_internal_error(
        self, hub_client: TestClient, ws_channel: WebSocketDeliveryChannel
    ):
        """A socket dropped from the registry is closed so the client reconnects."""
        with hub_client.websocket_connect(_url()) as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            (connection_id,) = ws_channel._connections
            asyncio.run(ws_channel.disconnect(connection_id))

            ws.send_json({"type": "join", "group": "beta"})
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == 1011
        assert ws_channel.group_members("beta") == 0
