"""Repository for notification operations.

Provides database access for the notifications table. Dedup policy lives in
the NotificationDispatcher; this layer only offers the primitives it needs
(lookup by collapse key, in-place update) plus the user-facing read paths.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification

# Fields that may be updated via NotificationRepository.update().
# Security: Never add 'id' or 'user_id' (ownership is immutable), or
# 'category'/'collapse_key' (changing them would bypass the dedup index).
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "message",
        "type",
        "read",
        "timestamp",
        "data",
    }
)


class NotificationRepository:
    """Stateless repository for Notification table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: str,
        title: str,
        message: str,
        type: str,
        category: str,
        collapse_key: str | None = None,
        data: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> Notification:
        """Create a new notification.

        Args:
            db: Async database session.
            user_id: Recipient.
            title: Short headline.
            message: Body text.
            type: info, success, warning or error.
            category: NotificationCategory value.
            collapse_key: Dedup key for collapsing categories.
            data: Optional structured payload.
            timestamp: Event time; defaults to now.

        Returns:
            Created Notification.

        Raises:
            sqlalchemy.exc.IntegrityError: If (user_id, collapse_key) exists.
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            category=category,
            collapse_key=collapse_key,
            data=data,
        )
        if timestamp is not None:
            notification.timestamp = timestamp
        db.add(notification)
        await db.flush()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def update(
        db: AsyncSession,
        notification: Notification,
        **kwargs: Any,
    ) -> Notification:
        """Update notification fields in place.

        Only fields in _UPDATABLE_FIELDS are allowed.

        Args:
            db: Async database session.
            notification: Notification loaded in this session.
            **kwargs: Field names and values to update.

        Returns:
            The updated Notification.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        for field, value in kwargs.items():
            setattr(notification, field, value)
        await db.flush()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def get_by_collapse_key(
        db: AsyncSession, user_id: str, collapse_key: str
    ) -> Notification | None:
        """Fetch the live record for a collapsing category.

        At most one row can match (UNIQUE (user_id, collapse_key)).
        """
        stmt = select(Notification).where(
            Notification.user_id == user_id,
            Notification.collapse_key == collapse_key,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_latest_by_category(
        db: AsyncSession, user_id: str, category: str
    ) -> Notification | None:
        """Fetch the user's most recent notification in a category."""
        stmt = (
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.category == category,
            )
            .order_by(Notification.timestamp.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(
        db: AsyncSession, notification_id: uuid.UUID
    ) -> Notification | None:
        return await db.get(Notification, notification_id)

    @staticmethod
    async def list_for_user(
        db: AsyncSession, user_id: str, *, limit: int = 50
    ) -> list[Notification]:
        """List a user's notifications, newest first.

        Args:
            db: Async database session.
            user_id: Recipient.
            limit: Maximum number of rows.

        Returns:
            Up to ``limit`` notifications ordered by timestamp descending.
        """
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.timestamp.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_unread(db: AsyncSession, user_id: str) -> list[Notification]:
        """List a user's unread notifications, newest first."""
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .order_by(Notification.timestamp.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_unread(db: AsyncSession, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def mark_read(
        db: AsyncSession, notification_id: uuid.UUID, user_id: str
    ) -> Notification | None:
        """Mark one notification as read.

        Security: the notification must belong to ``user_id``; otherwise it
        is reported as missing.

        Args:
            db: Async database session.
            notification_id: Notification to mark.
            user_id: Authenticated user.

        Returns:
            The updated Notification, or None if not found / not owned.
        """
        stmt = select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
        result = await db.execute(stmt)
        notification = result.scalar_one_or_none()
        if notification is None:
            return None
        notification.read = True
        await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: str) -> int:
        """Mark every unread notification of the user as read.

        Returns:
            Number of rows updated.
        """
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def delete_older_than(db: AsyncSession, cutoff: datetime) -> int:
        """Hard-delete notifications whose timestamp is before ``cutoff``.

        Returns:
            Number of rows deleted.
        """
        stmt = (
            delete(Notification)
            .where(Notification.timestamp < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0
