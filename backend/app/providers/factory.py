"""Provider factory functions.

Singleton pattern for provider instances.
"""

from app.providers.config import ProviderConfig
from app.providers.delivery.base import DeliveryChannel
from app.providers.delivery.mock_adapter import MockDeliveryChannel
from app.providers.delivery.websocket_adapter import WebSocketDeliveryChannel

_delivery_channel: DeliveryChannel | None = None


def get_delivery_channel(config: ProviderConfig | None = None) -> DeliveryChannel:
    """Get or create the delivery channel singleton.

    WHY SINGLETON:
    - The WebSocket registry must be shared by the WebSocket endpoint
      (which registers connections) and the dispatcher (which sends)
    - Consistent configuration across app

    WHY OPTIONAL CONFIG:
    - First call sets the config (app startup)
    - Subsequent calls reuse (business logic)

    Args:
        config: Optional provider configuration. If None and no channel
            exists, loads from environment.

    Returns:
        DeliveryChannel instance.

    Raises:
        ValueError: If the configured channel is unknown.
    """
    global _delivery_channel

    if _delivery_channel is None:
        if config is None:
            config = ProviderConfig.from_env()

        if config.delivery_channel == "websocket":
            _delivery_channel = WebSocketDeliveryChannel(config)
        elif config.delivery_channel == "mock":
            _delivery_channel = MockDeliveryChannel()
        else:
            raise ValueError(f"Unknown delivery channel: {config.delivery_channel}")

    return _delivery_channel


def reset_providers() -> None:
    """Reset provider singletons.

    Used in tests to ensure isolation between test cases.
    """
    global _delivery_channel
    _delivery_channel = None
