"""Provider abstraction layer.

Exports:
    Error classes for provider error handling
    ProviderConfig for configuration
    Factory functions for provider instances
"""

from app.providers.config import ProviderConfig
from app.providers.errors import (
    ConnectionNotFoundError,
    DeliveryError,
    InvalidGroupError,
    ProviderError,
)
from app.providers.factory import get_delivery_channel, reset_providers

__all__ = [
    # Config
    "ProviderConfig",
    # Errors
    "ProviderError",
    "DeliveryError",
    "InvalidGroupError",
    "ConnectionNotFoundError",
    # Factory
    "get_delivery_channel",
    "reset_providers",
]
