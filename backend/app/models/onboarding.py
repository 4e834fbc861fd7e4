"""Onboarding draft model.

One row per user holding the in-progress onboarding form. The row is
created on the first save, overwritten by later saves, and frozen once
``is_completed`` flips to true.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import AwareDateTime, Base, JSONDocument, utc_now


class OnboardingDraft(Base):
    """Resumable onboarding progress for a single user.

    Attributes:
        id: UUID primary key, generated on first creation.
        user_id: Owner. UNIQUE, so concurrent first saves cannot create two
            drafts.
        current_step: Advisory wizard step (>= 1). May move backwards.
        data: Structured draft document (see schemas.onboarding.OnboardingData).
        is_completed: Terminal flag set only by profile materialization.
        updated_at: Time of the last write.
    """

    __tablename__ = "onboarding_drafts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    current_step: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(),
        default=utc_now,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "current_step >= 1",
            name="ck_onboarding_drafts_current_step_positive",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<OnboardingDraft(user_id={self.user_id!r}, "
            f"step={self.current_step}, completed={self.is_completed})>"
        )
