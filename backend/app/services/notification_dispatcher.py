"""Notification dispatcher: persist, dedup and push user notifications.

Every emitted notification is stored first and pushed second:

1. Persist in its own transaction (UnitOfWork) and commit.
2. Push the matching realtime event to the user's connections.

Dedup policy is decided by category:

- ONBOARDING_PROGRESS collapses: the user's live progress record is
  overwritten (message, timestamp, data, type; read reset to false). The
  UNIQUE (user_id, collapse_key) index guarantees a single live record
  even when two emits race; the loser of the race updates the winner's row.
- ONBOARDING_COMPLETED and AD_HOC append: every emit creates a row.

Delivery is best-effort. A push failure is logged and never rolls back the
stored record; clients catch up through the read paths.
"""

import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.unit_of_work import UnitOfWork
from app.models.base import utc_now
from app.models.notification import (
    Notification,
    NotificationCategory,
    NotificationType,
)
from app.providers.delivery.base import (
    EVENT_GROUP_NOTIFICATION,
    EVENT_NOTIFICATION,
    EVENT_ONBOARDING_COMPLETED,
    EVENT_ONBOARDING_PROGRESS,
    DeliveryChannel,
)
from app.repositories.notification_repository import NotificationRepository
from app.schemas.notification import NotificationResponse

logger = logging.getLogger(__name__)

_COMPLETED_TITLE = "Onboarding completed"
_COMPLETED_MESSAGE = "Your professional profile is ready"

_EVENTS: dict[NotificationCategory, str] = {
    NotificationCategory.ONBOARDING_PROGRESS: EVENT_ONBOARDING_PROGRESS,
    NotificationCategory.ONBOARDING_COMPLETED: EVENT_ONBOARDING_COMPLETED,
    NotificationCategory.AD_HOC: EVENT_NOTIFICATION,
}


def _event_payload(notification: NotificationResponse) -> dict[str, Any]:
    """JSON-safe realtime payload for a stored notification.

    The structured ``data`` keys (current_step, profile_id) are flattened
    into the payload so clients read them next to the message.
    """
    payload: dict[str, Any] = {
        "id": str(notification.id),
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "timestamp": notification.timestamp.isoformat(),
    }
    if notification.data:
        payload.update(notification.data)
    return payload


class NotificationDispatcher:
    """Stores notifications and pushes them over a delivery channel.

    Each operation opens its own session from ``session_factory``; the
    dispatcher never joins a caller's transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        channel: DeliveryChannel,
    ) -> None:
        self._session_factory = session_factory
        self._channel = channel

    # =========================================================================
    # Emit
    # =========================================================================

    async def emit(
        self,
        user_id: str,
        category: NotificationCategory,
        title: str,
        message: str,
        *,
        type: NotificationType = NotificationType.INFO,
        data: dict[str, Any] | None = None,
    ) -> NotificationResponse:
        """Persist a notification under the category's dedup policy, then push.

        Args:
            user_id: Recipient.
            category: Decides collapse vs append and the realtime event name.
            title: Short headline.
            message: Body text.
            type: Severity.
            data: Optional JSON-safe payload stored with the record.

        Returns:
            Snapshot of the stored (created or overwritten) record.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the record cannot be stored.
                Nothing is pushed in that case.
        """
        category = NotificationCategory(category)
        type = NotificationType(type)

        async with UnitOfWork(self._session_factory) as uow:
            if category.collapses:
                notification = await self._store_collapsed(
                    uow.session, user_id, category, title, message, type, data
                )
            else:
                notification = await NotificationRepository.create(
                    uow.session,
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type.value,
                    category=category.value,
                    data=data,
                )
            snapshot = NotificationResponse.model_validate(notification)

        await self._push_to_user(user_id, _EVENTS[category], _event_payload(snapshot))
        return snapshot

    async def _store_collapsed(
        self,
        db: AsyncSession,
        user_id: str,
        category: NotificationCategory,
        title: str,
        message: str,
        type: NotificationType,
        data: dict[str, Any] | None,
    ) -> Notification:
        """Overwrite the user's live record for ``category``, or create it."""
        collapse_key = category.value
        fields = {
            "title": title,
            "message": message,
            "type": type.value,
            "data": data,
            "read": False,
            "timestamp": utc_now(),
        }

        existing = await NotificationRepository.get_by_collapse_key(
            db, user_id, collapse_key
        )
        if existing is not None:
            return await NotificationRepository.update(db, existing, **fields)

        try:
            async with db.begin_nested():
                created = await NotificationRepository.create(
                    db,
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type.value,
                    category=category.value,
                    collapse_key=collapse_key,
                    data=data,
                    timestamp=fields["timestamp"],
                )
            return created
        except IntegrityError:
            # Race condition: another emit created the live record.
            # Savepoint was rolled back; session is still usable.
            existing = await NotificationRepository.get_by_collapse_key(
                db, user_id, collapse_key
            )
            if existing is None:
                raise  # Can't recover, re-raise
            return await NotificationRepository.update(db, existing, **fields)

    async def _push_to_user(
        self, user_id: str, event: str, payload: dict[str, Any]
    ) -> None:
        try:
            await self._channel.send_to_user(user_id, event, payload)
        except Exception:
            # Best-effort: the stored notification is the source of truth.
            logger.warning(
                "Delivery of %s to user %s failed", event, user_id, exc_info=True
            )

    # =========================================================================
    # Convenience emitters
    # =========================================================================

    async def notify_onboarding_progress(
        self,
        user_id: str,
        current_step: int,
        message: str | None = None,
    ) -> NotificationResponse:
        """Emit (collapse) the user's onboarding progress notification."""
        return await self.emit(
            user_id,
            NotificationCategory.ONBOARDING_PROGRESS,
            settings.notification_progress_title,
            message or f"Progress saved at step {current_step}",
            type=NotificationType.INFO,
            data={"current_step": current_step},
        )

    async def notify_onboarding_completed(
        self, user_id: str, profile_id: uuid.UUID
    ) -> NotificationResponse:
        """Emit (append) the onboarding completed notification."""
        return await self.emit(
            user_id,
            NotificationCategory.ONBOARDING_COMPLETED,
            _COMPLETED_TITLE,
            _COMPLETED_MESSAGE,
            type=NotificationType.SUCCESS,
            data={"profile_id": str(profile_id)},
        )

    async def send_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        data: dict[str, Any] | None = None,
    ) -> NotificationResponse:
        """Emit (append) an ad hoc notification."""
        return await self.emit(
            user_id,
            NotificationCategory.AD_HOC,
            title,
            message,
            type=type,
            data=data,
        )

    async def notify_all(self, message: str) -> None:
        """Push a transient broadcast to every connection. Not persisted."""
        payload = {"message": message, "timestamp": utc_now().isoformat()}
        try:
            await self._channel.send_to_all(EVENT_NOTIFICATION, payload)
        except Exception:
            logger.warning("Broadcast delivery failed", exc_info=True)

    async def notify_group(self, group: str, message: str) -> None:
        """Push a transient message to a named group. Not persisted."""
        payload = {
            "message": message,
            "group_name": group,
            "timestamp": utc_now().isoformat(),
        }
        try:
            await self._channel.send_to_group(group, EVENT_GROUP_NOTIFICATION, payload)
        except Exception:
            logger.warning("Delivery to group %s failed", group, exc_info=True)

    # =========================================================================
    # Read paths
    # =========================================================================

    async def get_all(
        self, user_id: str, limit: int | None = None
    ) -> list[NotificationResponse]:
        """Newest-first notifications, capped at ``limit`` (default 50)."""
        limit = limit or settings.notification_list_limit
        async with self._session_factory() as db:
            rows = await NotificationRepository.list_for_user(
                db, user_id, limit=limit
            )
            return [NotificationResponse.model_validate(row) for row in rows]

    async def get_unread(self, user_id: str) -> list[NotificationResponse]:
        async with self._session_factory() as db:
            rows = await NotificationRepository.list_unread(db, user_id)
            return [NotificationResponse.model_validate(row) for row in rows]

    async def count_unread(self, user_id: str) -> int:
        async with self._session_factory() as db:
            return await NotificationRepository.count_unread(db, user_id)

    async def mark_read(
        self, user_id: str, notification_id: uuid.UUID
    ) -> NotificationResponse | None:
        """Mark one of the user's notifications as read.

        Returns:
            The updated notification, or None if it does not exist or
            belongs to another user.
        """
        async with UnitOfWork(self._session_factory) as uow:
            row = await NotificationRepository.mark_read(
                uow.session, notification_id, user_id
            )
            if row is None:
                return None
            return NotificationResponse.model_validate(row)

    async def mark_all_read(self, user_id: str) -> int:
        """Mark all of the user's notifications as read; returns the count."""
        async with UnitOfWork(self._session_factory) as uow:
            return await NotificationRepository.mark_all_read(uow.session, user_id)
