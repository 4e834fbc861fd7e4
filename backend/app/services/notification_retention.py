"""Notification retention cleanup.

Notifications older than the retention window (30 days by default) are
hard deleted. Intended to run daily from scripts/purge_notifications.py or
a scheduler.

SINGLE-TENANT: The purge operates globally (no user scoping).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import APIError
from app.models.base import utc_now
from app.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationPurgeResult:
    """Result of a notification purge.

    Attributes:
        cutoff: Notifications with a timestamp before this were deleted.
        deleted: Number of notifications deleted.
    """

    cutoff: datetime
    deleted: int


class CleanupError(APIError):
    """Raised when a cleanup operation fails at the database level."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="CLEANUP_ERROR",
            message=message,
            status_code=500,
        )


async def purge_old_notifications(
    db: AsyncSession,
    older_than_days: int | None = None,
    *,
    now: datetime | None = None,
) -> NotificationPurgeResult:
    """Delete notifications older than the retention window.

    The caller owns the transaction and must commit.

    Args:
        db: Database session.
        older_than_days: Retention window; defaults to
            settings.notification_retention_days.
        now: Reference time; defaults to the current UTC time.

    Returns:
        NotificationPurgeResult with the cutoff and deletion count.

    Raises:
        ValueError: If older_than_days is negative.
        CleanupError: If the database operation fails.
    """
    if older_than_days is None:
        older_than_days = settings.notification_retention_days
    if older_than_days < 0:
        msg = f"older_than_days must be >= 0, got {older_than_days}"
        raise ValueError(msg)

    cutoff = (now or utc_now()) - timedelta(days=older_than_days)
    try:
        deleted = await NotificationRepository.delete_older_than(db, cutoff)
    except SQLAlchemyError as exc:
        logger.error("Notification purge failed: %s", exc)
        raise CleanupError("Notification purge failed") from exc

    logger.info("Purged %d notification(s) older than %s", deleted, cutoff.isoformat())
    return NotificationPurgeResult(cutoff=cutoff, deleted=deleted)
