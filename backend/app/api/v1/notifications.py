"""Notifications API router.

Endpoints:
- GET /: Newest-first notifications (default 50).
- GET /unread: Unread notifications.
- GET /unread/count: Number of unread notifications.
- PUT /{notification_id}/read: Mark one notification as read.
- PUT /read-all: Mark all notifications as read.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Query

from app.api.deps import CurrentUserId, Dispatcher
from app.core.errors import NotFoundError
from app.core.responses import DataResponse
from app.schemas.notification import (
    MarkedReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter()

_MAX_LIST_LIMIT = 200


@router.get("")
async def list_notifications(
    user_id: CurrentUserId,
    dispatcher: Dispatcher,
    limit: Annotated[int | None, Query(ge=1, le=_MAX_LIST_LIMIT)] = None,
) -> DataResponse[list[NotificationResponse]]:
    """List the user's notifications, newest first.

    Args:
        user_id: Current authenticated user.
        dispatcher: Notification dispatcher.
        limit: Maximum number of notifications (default 50).
    """
    return DataResponse(data=await dispatcher.get_all(user_id, limit))


@router.get("/unread")
async def list_unread_notifications(
    user_id: CurrentUserId,
    dispatcher: Dispatcher,
) -> DataResponse[list[NotificationResponse]]:
    return DataResponse(data=await dispatcher.get_unread(user_id))


@router.get("/unread/count")
async def count_unread_notifications(
    user_id: CurrentUserId,
    dispatcher: Dispatcher,
) -> DataResponse[UnreadCountResponse]:
    count = await dispatcher.count_unread(user_id)
    return DataResponse(data=UnreadCountResponse(count=count))


@router.put("/read-all")
async def mark_all_notifications_read(
    user_id: CurrentUserId,
    dispatcher: Dispatcher,
) -> DataResponse[MarkedReadResponse]:
    updated = await dispatcher.mark_all_read(user_id)
    return DataResponse(data=MarkedReadResponse(updated=updated))


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: uuid.UUID,
    user_id: CurrentUserId,
    dispatcher: Dispatcher,
) -> DataResponse[NotificationResponse]:
    """Mark one notification as read.

    Raises:
        NotFoundError: If the notification doesn't exist or belongs to
            another user.
    """
    notification = await dispatcher.mark_read(user_id, notification_id)
    if notification is None:
        raise NotFoundError("Notification", str(notification_id))
    return DataResponse(data=notification)
