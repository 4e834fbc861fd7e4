"""Tests for WebSocketDeliveryChannel (connection registry and fan-out).

Uses fake sockets that record send_json calls; no network involved.
"""

import asyncio
from typing import Any

import pytest

from app.providers.config import ProviderConfig
from app.providers.delivery.websocket_adapter import WebSocketDeliveryChannel
from app.providers.errors import (
    ConnectionNotFoundError,
    DeliveryError,
    InvalidGroupError,
)

_ALICE = "alice"
_BOB = "bob"


class _FakeSocket:
    """Stand-in for starlette's WebSocket; only send_json is used."""

    def __init__(self, *, fail: bool = False, delay: float = 0.0) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail
        self.delay = delay

    async def send_json(self, message: dict[str, Any]) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


@pytest.fixture
def channel() -> WebSocketDeliveryChannel:
    return WebSocketDeliveryChannel(
        ProviderConfig(send_timeout_seconds=0.05, max_group_name_length=10)
    )


class TestRegistry:
    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, channel: WebSocketDeliveryChannel):
        first = await channel.connect(_FakeSocket(), _ALICE)
        await channel.connect(_FakeSocket(), _ALICE)
        await channel.connect(_FakeSocket(), _BOB)

        assert channel.connection_count() == 3
        assert channel.connection_count(_ALICE) == 2

        await channel.disconnect(first)
        await channel.disconnect(first)

        assert channel.connection_count(_ALICE) == 1

    @pytest.mark.asyncio
    async def test_groups(self, channel: WebSocketDeliveryChannel):
        connection = await channel.connect(_FakeSocket(), _ALICE)

        await channel.join_group(connection, "beta")
        assert channel.group_members("beta") == 1

        await channel.leave_group(connection, "beta")
        assert channel.group_members("beta") == 0

    @pytest.mark.asyncio
    async def test_disconnect_leaves_groups(self, channel: WebSocketDeliveryChannel):
        connection = await channel.connect(_FakeSocket(), _ALICE)
        await channel.join_group(connection, "beta")

        await channel.disconnect(connection)

        assert channel.group_members("beta") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("group", ["", "   ", "x" * 11])
    async def test_invalid_group_names(
        self, channel: WebSocketDeliveryChannel, group: str
    ):
        connection = await channel.connect(_FakeSocket(), _ALICE)

        with pytest.raises(InvalidGroupError):
            await channel.join_group(connection, group)

    @pytest.mark.asyncio
    async def test_join_unknown_connection(self, channel: WebSocketDeliveryChannel):
        with pytest.raises(ConnectionNotFoundError):
            await channel.join_group("missing", "beta")


class TestSending:
    @pytest.mark.asyncio
    async def test_send_to_user_reaches_every_connection(
        self, channel: WebSocketDeliveryChannel
    ):
        phone, laptop, other = _FakeSocket(), _FakeSocket(), _FakeSocket()
        await channel.connect(phone, _ALICE)
        await channel.connect(laptop, _ALICE)
        await channel.connect(other, _BOB)

        await channel.send_to_user(_ALICE, "Notification", {"message": "hi"})

        expected = {"event": "Notification", "payload": {"message": "hi"}}
        assert phone.sent == [expected]
        assert laptop.sent == [expected]
        assert other.sent == []

    @pytest.mark.asyncio
    async def test_send_to_user_without_connections_is_noop(
        self, channel: WebSocketDeliveryChannel
    ):
        await channel.send_to_user(_ALICE, "Notification", {})

    @pytest.mark.asyncio
    async def test_group_named_after_user_gets_no_private_events(
        self, channel: WebSocketDeliveryChannel
    ):
        """User addressing and group names are separate namespaces."""
        eavesdropper = _FakeSocket()
        connection = await channel.connect(eavesdropper, _BOB)
        await channel.join_group(connection, _ALICE)

        await channel.send_to_user(_ALICE, "OnboardingProgress", {"current_step": 1})

        assert eavesdropper.sent == []

    @pytest.mark.asyncio
    async def test_send_to_group_and_all(self, channel: WebSocketDeliveryChannel):
        member, outsider = _FakeSocket(), _FakeSocket()
        connection = await channel.connect(member, _ALICE)
        await channel.connect(outsider, _BOB)
        await channel.join_group(connection, "beta")

        await channel.send_to_group("beta", "GroupNotification", {"message": "g"})
        await channel.send_to_all("Notification", {"message": "all"})

        assert [m["event"] for m in member.sent] == [
            "GroupNotification",
            "Notification",
        ]
        assert [m["event"] for m in outsider.sent] == ["Notification"]

    @pytest.mark.asyncio
    async def test_failed_socket_is_pruned_and_reported(
        self, channel: WebSocketDeliveryChannel
    ):
        """Healthy connections still receive; dead ones are dropped."""
        healthy, dead = _FakeSocket(), _FakeSocket(fail=True)
        await channel.connect(healthy, _ALICE)
        await channel.connect(dead, _ALICE)

        with pytest.raises(DeliveryError) as exc_info:
            await channel.send_to_user(_ALICE, "Notification", {})

        assert exc_info.value.failed_connections == 1
        assert len(healthy.sent) == 1
        assert channel.connection_count(_ALICE) == 1

    @pytest.mark.asyncio
    async def test_slow_socket_times_out(self, channel: WebSocketDeliveryChannel):
        await channel.connect(_FakeSocket(delay=1.0), _ALICE)

        with pytest.raises(DeliveryError):
            await channel.send_to_user(_ALICE, "Notification", {})

        assert channel.connection_count(_ALICE) == 0

    @pytest.mark.asyncio
    async def test_pruned_connection_cannot_join_groups(
        self, channel: WebSocketDeliveryChannel
    ):
        connection = await channel.connect(_FakeSocket(delay=1.0), _ALICE)

        with pytest.raises(DeliveryError):
            await channel.send_to_user(_ALICE, "Notification", {})

        assert channel.is_connected(connection) is False
        with pytest.raises(ConnectionNotFoundError):
            await channel.join_group(connection, "beta")
        await channel.leave_group(connection, "beta")
        assert channel.group_members("beta") == 0
