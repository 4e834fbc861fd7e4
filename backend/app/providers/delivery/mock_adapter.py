"""Mock delivery channel for testing.

MockDeliveryChannel records every push instead of touching sockets, and
can be told to fail so tests can prove delivery is best-effort.
"""

from typing import Any

from app.providers.delivery.base import DeliveryChannel
from app.providers.errors import DeliveryError


class MockDeliveryChannel(DeliveryChannel):
    """Mock channel for delivery tests.

    Attributes:
        calls: Record of all method invocations for test assertions.
        fail_with: Exception raised by every send when set.
    """

    def __init__(self) -> None:
        """Initialize mock delivery channel.

        Note: Does not call super().__init__() - we don't need a config for mock.
        """
        self.calls: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None

    def fail_next_sends(self, exc: Exception | None = None) -> None:
        """Make every following send raise ``exc`` (DeliveryError by default)."""
        self.fail_with = exc or DeliveryError("mock delivery failure")

    async def send_to_user(
        self, user_id: str, event: str, payload: dict[str, Any]
    ) -> None:
        self._record("send_to_user", target=user_id, event=event, payload=payload)

    async def send_to_group(
        self, group: str, event: str, payload: dict[str, Any]
    ) -> None:
        self._record("send_to_group", target=group, event=event, payload=payload)

    async def send_to_all(self, event: str, payload: dict[str, Any]) -> None:
        self._record("send_to_all", target=None, event=event, payload=payload)

    def _record(
        self,
        method: str,
        *,
        target: str | None,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        self.calls.append(
            {
                "method": method,
                "target": target,
                "event": event,
                "payload": payload,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with

    def events_for(self, user_id: str) -> list[str]:
        """Event names pushed to ``user_id``, in order."""
        return [
            call["event"]
            for call in self.calls
            if call["method"] == "send_to_user" and call["target"] == user_id
        ]

    def assert_sent(self, event: str) -> None:
        """Test helper to verify an event was pushed.

        Raises:
            AssertionError: If no call carried ``event``.
        """
        events = [call["event"] for call in self.calls]
        assert event in events, f"Expected '{event}' to be sent, got {events}"
