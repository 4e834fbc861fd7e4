"""In-process WebSocket delivery channel.

Keeps a registry of open WebSocket connections for this process:

- every connection is attached to its user (per-user addressing)
- connections can join and leave named groups
- sockets that fail on send are pruned from the registry

Per-user addressing and named groups are separate namespaces, so a client
joining a group called "alice" never receives alice's private events.

Single-process only: with several API workers each worker sees just its
own connections. A broker-backed adapter is required for fan-out across
instances.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from starlette.websockets import WebSocket

from app.providers.config import ProviderConfig
from app.providers.delivery.base import DeliveryChannel
from app.providers.errors import (
    ConnectionNotFoundError,
    DeliveryError,
    InvalidGroupError,
)

logger = logging.getLogger(__name__)


@dataclass
class _Connection:
    connection_id: str
    user_id: str
    websocket: WebSocket
    groups: set[str] = field(default_factory=set)


class WebSocketDeliveryChannel(DeliveryChannel):
    """Delivery channel backed by the app's own WebSocket endpoint.

    Registry mutations are serialized by an asyncio.Lock; sends happen
    outside the lock on a snapshot of the target connections.
    """

    def __init__(self, config: ProviderConfig) -> None:
        super().__init__(config)
        self._connections: dict[str, _Connection] = {}
        self._by_user: dict[str, set[str]] = defaultdict(set)
        self._groups: dict[str, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    # =========================================================================
    # Registry
    # =========================================================================

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        """Register an accepted socket for ``user_id``.

        Args:
            websocket: Accepted WebSocket.
            user_id: Authenticated owner of the connection.

        Returns:
            Connection id to pass to join_group / leave_group / disconnect.
        """
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self._connections[connection_id] = _Connection(
                connection_id=connection_id,
                user_id=user_id,
                websocket=websocket,
            )
            self._by_user[user_id].add(connection_id)
        logger.debug("Connection %s opened for user %s", connection_id, user_id)
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Remove a connection and its group memberships. Idempotent."""
        async with self._lock:
            self._remove_locked(connection_id)

    async def join_group(self, connection_id: str, group: str) -> None:
        """Add a connection to a named group.

        Raises:
            InvalidGroupError: If the group name is empty or too long.
            ConnectionNotFoundError: If the connection is not registered,
                including one pruned after a failed send.
        """
        self._validate_group(group)
        async with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                raise ConnectionNotFoundError(
                    f"Connection {connection_id} is not registered"
                )
            connection.groups.add(group)
            self._groups[group].add(connection_id)

    async def leave_group(self, connection_id: str, group: str) -> None:
        """Remove a connection from a named group. Unknown groups are ignored."""
        self._validate_group(group)
        async with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return
            connection.groups.discard(group)
            self._discard_member_locked(group, connection_id)

    def is_connected(self, connection_id: str) -> bool:
        """False once the connection is disconnected or pruned."""
        return connection_id in self._connections

    def connection_count(self, user_id: str | None = None) -> int:
        """Number of open connections, overall or for one user."""
        if user_id is None:
            return len(self._connections)
        return len(self._by_user.get(user_id, ()))

    def group_members(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    # =========================================================================
    # DeliveryChannel
    # =========================================================================

    async def send_to_user(
        self, user_id: str, event: str, payload: dict[str, Any]
    ) -> None:
        async with self._lock:
            targets = [
                self._connections[cid] for cid in self._by_user.get(user_id, ())
            ]
        await self._broadcast(targets, event, payload)

    async def send_to_group(
        self, group: str, event: str, payload: dict[str, Any]
    ) -> None:
        async with self._lock:
            targets = [self._connections[cid] for cid in self._groups.get(group, ())]
        await self._broadcast(targets, event, payload)

    async def send_to_all(self, event: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            targets = list(self._connections.values())
        await self._broadcast(targets, event, payload)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _broadcast(
        self,
        targets: list[_Connection],
        event: str,
        payload: dict[str, Any],
    ) -> None:
        """Send one event to each target, pruning sockets that fail.

        Raises:
            DeliveryError: If at least one target failed.
        """
        if not targets:
            return

        message = {"event": event, "payload": payload}
        results = await asyncio.gather(
            *(self._send(target, message) for target in targets),
            return_exceptions=True,
        )

        dead = [
            target
            for target, result in zip(targets, results, strict=True)
            if isinstance(result, BaseException)
        ]
        if not dead:
            return

        async with self._lock:
            for target in dead:
                self._remove_locked(target.connection_id)
        logger.warning(
            "Pruned %d dead connection(s) while sending %s", len(dead), event
        )
        raise DeliveryError(
            f"{len(dead)} of {len(targets)} connection(s) failed for {event}",
            failed_connections=len(dead),
        )

    async def _send(self, target: _Connection, message: dict[str, Any]) -> None:
        await asyncio.wait_for(
            target.websocket.send_json(message),
            timeout=self.config.send_timeout_seconds,
        )

    def _validate_group(self, group: str) -> None:
        if not group or not group.strip():
            raise InvalidGroupError("Group name must not be empty")
        if len(group) > self.config.max_group_name_length:
            raise InvalidGroupError("Group name is too long")

    def _remove_locked(self, connection_id: str) -> None:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        user_connections = self._by_user.get(connection.user_id)
        if user_connections is not None:
            user_connections.discard(connection_id)
            if not user_connections:
                del self._by_user[connection.user_id]
        for group in connection.groups:
            self._discard_member_locked(group, connection_id)

    def _discard_member_locked(self, group: str, connection_id: str) -> None:
        members = self._groups.get(group)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._groups[group]
