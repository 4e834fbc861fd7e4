"""Abstract base class for realtime delivery channels.

A delivery channel pushes named events with a JSON payload to connected
clients. Three addressing modes exist: one user (every connection of that
user), a named group, and everyone.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.providers.config import ProviderConfig

# Event names understood by the web client.
EVENT_ONBOARDING_PROGRESS = "OnboardingProgress"
EVENT_ONBOARDING_COMPLETED = "OnboardingCompleted"
EVENT_NOTIFICATION = "Notification"
EVENT_GROUP_NOTIFICATION = "GroupNotification"
EVENT_PONG = "Pong"


class DeliveryChannel(ABC):
    """Abstract base class for delivery channels.

    WHY AN ABSTRACTION:
    - The dispatcher must not know how clients are connected
    - Tests swap in MockDeliveryChannel and can inject failures
    - A multi-instance deployment can add a broker-backed adapter
    """

    def __init__(self, config: "ProviderConfig") -> None:
        """Initialize with provider configuration.

        Args:
            config: Provider configuration.
        """
        self.config = config

    @abstractmethod
    async def send_to_user(
        self, user_id: str, event: str, payload: dict[str, Any]
    ) -> None:
        """Push an event to every connection of one user.

        A user with no open connection is not an error; the event is
        dropped and the client catches up from stored notifications.

        Raises:
            DeliveryError: If the transport failed for a live connection.
        """
        ...

    @abstractmethod
    async def send_to_group(
        self, group: str, event: str, payload: dict[str, Any]
    ) -> None:
        """Push an event to every connection that joined ``group``.

        Raises:
            DeliveryError: If the transport failed for a live connection.
        """
        ...

    @abstractmethod
    async def send_to_all(self, event: str, payload: dict[str, Any]) -> None:
        """Push an event to every open connection.

        Raises:
            DeliveryError: If the transport failed for a live connection.
        """
        ...
