"""Provider error taxonomy.

Error classes for the delivery channel abstraction.

WHY SEPARATE ERROR CLASSES:
- Callers can tell "nobody to deliver to" apart from a broken transport
- Provider-agnostic error handling (adapters map to these)
"""


__all__ = [
    "ProviderError",
    "DeliveryError",
    "InvalidGroupError",
    "ConnectionNotFoundError",
]


class ProviderError(Exception):
    """Base class for all provider errors.

    All provider-specific exceptions should inherit from this class,
    allowing callers to catch all provider errors with a single handler.
    """

    pass


class DeliveryError(ProviderError):
    """Push to a recipient failed.

    Delivery is best-effort: the dispatcher logs this and moves on. The
    persisted notification stays the source of truth.
    """

    def __init__(self, message: str, failed_connections: int = 0):
        """Initialize DeliveryError.

        Args:
            message: Error description.
            failed_connections: How many sockets failed during the send.
        """
        super().__init__(message)
        self.failed_connections = failed_connections


class InvalidGroupError(ProviderError):
    """Group name is empty, too long, or reserved for per-user groups."""

    pass


class ConnectionNotFoundError(ProviderError):
    """Connection id is not registered, or was pruned after a failed send."""

    pass
