"""Notification model.

Notifications are append-only for most categories. Progress notifications
collapse: a user holds at most one live record per collapsing category,
enforced by the UNIQUE (user_id, collapse_key) constraint. Appending
categories leave collapse_key NULL, and NULLs never collide.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Index,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import AwareDateTime, Base, JSONDocument, utc_now


class NotificationType(str, Enum):
    """Severity shown by the client."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationCategory(str, Enum):
    """What a notification is about.

    The category decides dedup behavior: ONBOARDING_PROGRESS collapses to
    the latest record, everything else appends.
    """

    ONBOARDING_PROGRESS = "onboarding_progress"
    ONBOARDING_COMPLETED = "onboarding_completed"
    AD_HOC = "ad_hoc"

    @property
    def collapses(self) -> bool:
        return self is NotificationCategory.ONBOARDING_PROGRESS


class Notification(Base):
    """Persisted user notification.

    Attributes:
        id: UUID primary key.
        user_id: Recipient.
        title: Short headline.
        message: Body text.
        type: One of NotificationType.
        category: One of NotificationCategory.
        collapse_key: Set for collapsing categories, NULL otherwise.
        read: Whether the user has seen it.
        timestamp: Time of the last (re)write.
        data: Optional structured payload (e.g. current_step, profile_id).
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        default=NotificationType.INFO.value,
        nullable=False,
    )
    category: Mapped[str] = mapped_column(
        String(50),
        default=NotificationCategory.AD_HOC.value,
        nullable=False,
    )
    collapse_key: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(
        AwareDateTime(),
        default=utc_now,
        nullable=False,
    )
    data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('info', 'success', 'warning', 'error')",
            name="ck_notifications_type",
        ),
        CheckConstraint(
            "category IN ('onboarding_progress', 'onboarding_completed', 'ad_hoc')",
            name="ck_notifications_category",
        ),
        UniqueConstraint(
            "user_id",
            "collapse_key",
            name="uq_notifications_user_collapse_key",
        ),
        Index("ix_notifications_user_timestamp", "user_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(user_id={self.user_id!r}, "
            f"category={self.category!r}, read={self.read})>"
        )
