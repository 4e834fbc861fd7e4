"""Provider configuration management.

Centralized configuration for the realtime delivery channel.
"""

import os
from dataclasses import dataclass


@dataclass
class ProviderConfig:
    """Centralized provider configuration.

    Attributes:
        delivery_channel: Which delivery adapter to use ("websocket", "mock").
        send_timeout_seconds: Upper bound for a single socket send. A client
            that does not drain its socket in time is treated as dead.
        max_group_name_length: Longest accepted group name for join/leave.
    """

    delivery_channel: str = "websocket"
    send_timeout_seconds: float = 5.0
    max_group_name_length: int = 100

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Load configuration from environment variables.

        Returns:
            ProviderConfig instance with values from environment.
        """
        return cls(
            delivery_channel=os.getenv("DELIVERY_CHANNEL", "websocket"),
            send_timeout_seconds=float(os.getenv("DELIVERY_SEND_TIMEOUT", "5.0")),
            max_group_name_length=int(os.getenv("DELIVERY_MAX_GROUP_NAME", "100")),
        )
