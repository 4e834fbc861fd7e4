"""Realtime notification hub (WebSocket).

Endpoint:
- WS /hubs/notifications?access_token=...: push channel for notifications.

On connect the socket is authenticated (cookie, bearer header or the
access_token query parameter) and attached to its user, so every event sent
to that user reaches it. Client messages:

- {"type": "ping"}                 → Pong
- {"type": "join", "group": "g"}   → JoinedGroup
- {"type": "leave", "group": "g"}  → LeftGroup

Anything else is answered with an Error event; the connection stays open.

A connection pruned by the channel after a failed send gets no more pushes,
so the hub closes it with 1011 on its next message and the client
reconnects.
"""

import json
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.api.deps import Channel
from app.core.auth import InvalidTokenError, decode_access_token, extract_token
from app.core.config import settings
from app.models.base import utc_now
from app.providers.delivery.base import EVENT_PONG
from app.providers.delivery.websocket_adapter import WebSocketDeliveryChannel
from app.providers.errors import ConnectionNotFoundError, InvalidGroupError

logger = structlog.get_logger()

router = APIRouter()

_EVENT_ERROR = "Error"
_EVENT_JOINED = "JoinedGroup"
_EVENT_LEFT = "LeftGroup"


def _authenticate(websocket: WebSocket) -> str | None:
    """Resolve the user id for a handshake, or None if unauthenticated."""
    if not settings.auth_enabled:
        return settings.default_user_id or None

    token = extract_token(websocket)
    if not token:
        return None
    try:
        return decode_access_token(token)
    except InvalidTokenError:
        return None


async def _send(websocket: WebSocket, event: str, payload: dict[str, Any]) -> None:
    await websocket.send_json({"event": event, "payload": payload})


async def _handle_message(
    websocket: WebSocket,
    channel: WebSocketDeliveryChannel,
    connection_id: str,
    raw: str,
) -> None:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        await _send(websocket, _EVENT_ERROR, {"message": "Message must be JSON"})
        return
    if not isinstance(message, dict):
        await _send(websocket, _EVENT_ERROR, {"message": "Message must be an object"})
        return

    kind = message.get("type")
    if kind == "ping":
        await _send(websocket, EVENT_PONG, {"timestamp": utc_now().isoformat()})
        return

    if kind in ("join", "leave"):
        group = message.get("group")
        if not isinstance(group, str):
            await _send(websocket, _EVENT_ERROR, {"message": "group is required"})
            return
        try:
            if kind == "join":
                await channel.join_group(connection_id, group)
                await _send(websocket, _EVENT_JOINED, {"group": group})
            else:
                await channel.leave_group(connection_id, group)
                await _send(websocket, _EVENT_LEFT, {"group": group})
        except InvalidGroupError as exc:
            await _send(websocket, _EVENT_ERROR, {"message": str(exc)})
        return

    await _send(websocket, _EVENT_ERROR, {"message": "Unknown message type"})


@router.websocket("/hubs/notifications")
async def notifications_hub(websocket: WebSocket, channel: Channel) -> None:
    """Serve one client connection until it disconnects."""
    user_id = _authenticate(websocket)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not isinstance(channel, WebSocketDeliveryChannel):
        logger.error(
            "WebSocket hub requires the websocket delivery channel",
            channel=type(channel).__name__,
        )
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    connection_id = await channel.connect(websocket, user_id)
    logger.info("Hub connection opened", user_id=user_id, connection_id=connection_id)
    try:
        while True:
            raw = await websocket.receive_text()
            if not channel.is_connected(connection_id):
                raise ConnectionNotFoundError(connection_id)
            await _handle_message(websocket, channel, connection_id, raw)
    except WebSocketDisconnect:
        pass
    except ConnectionNotFoundError:
        logger.info(
            "Hub connection pruned", user_id=user_id, connection_id=connection_id
        )
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        await channel.disconnect(connection_id)
        logger.info(
            "Hub connection closed", user_id=user_id, connection_id=connection_id
        )
