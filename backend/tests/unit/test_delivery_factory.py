"""Tests for the delivery channel factory and the mock channel."""

import pytest

from app.providers.config import ProviderConfig
from app.providers.delivery.mock_adapter import MockDeliveryChannel
from app.providers.delivery.websocket_adapter import WebSocketDeliveryChannel
from app.providers.errors import DeliveryError
from app.providers.factory import get_delivery_channel, reset_providers


class TestGetDeliveryChannel:
    def test_websocket_by_default(self):
        channel = get_delivery_channel(ProviderConfig())

        assert type(channel) is WebSocketDeliveryChannel

    def test_is_a_singleton(self):
        first = get_delivery_channel(ProviderConfig())

        assert get_delivery_channel() is first

    def test_reset_creates_new_instance(self):
        first = get_delivery_channel(ProviderConfig())
        reset_providers()

        assert get_delivery_channel(ProviderConfig()) is not first

    def test_mock_channel(self):
        channel = get_delivery_channel(ProviderConfig(delivery_channel="mock"))

        assert type(channel) is MockDeliveryChannel

    def test_unknown_channel(self):
        with pytest.raises(ValueError, match="Unknown delivery channel"):
            get_delivery_channel(ProviderConfig(delivery_channel="carrier-pigeon"))

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DELIVERY_CHANNEL", "mock")
        monkeypatch.setenv("DELIVERY_SEND_TIMEOUT", "2.5")

        config = ProviderConfig.from_env()

        assert config.delivery_channel == "mock"
        assert config.send_timeout_seconds == 2.5
        assert config.max_group_name_length == 100


class TestMockDeliveryChannel:
    @pytest.mark.asyncio
    async def test_records_calls(self):
        mock = MockDeliveryChannel()

        await mock.send_to_user("u1", "Notification", {"message": "hi"})
        await mock.send_to_group("g", "GroupNotification", {})
        await mock.send_to_all("Notification", {})

        assert [c["method"] for c in mock.calls] == [
            "send_to_user",
            "send_to_group",
            "send_to_all",
        ]
        assert mock.events_for("u1") == ["Notification"]
        mock.assert_sent("GroupNotification")

    @pytest.mark.asyncio
    async def test_fail_next_sends_still_records(self):
        mock = MockDeliveryChannel()
        mock.fail_next_sends()

        with pytest.raises(DeliveryError):
            await mock.send_to_user("u1", "Notification", {})

        assert len(mock.calls) == 1

    def test_assert_sent_fails_for_missing_event(self):
        with pytest.raises(AssertionError):
            MockDeliveryChannel().assert_sent("Notification")
