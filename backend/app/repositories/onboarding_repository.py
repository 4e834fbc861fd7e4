"""Repository for onboarding draft operations.

Provides database access for the onboarding_drafts table. One row per user;
the UNIQUE constraint on user_id is the authoritative guard against duplicate
drafts, the read-before-write here is only the fast path.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utc_now
from app.models.onboarding import OnboardingDraft

logger = logging.getLogger(__name__)


class OnboardingDraftRepository:
    """Stateless repository for OnboardingDraft table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_user(
        db: AsyncSession,
        user_id: str,
        *,
        for_update: bool = False,
    ) -> OnboardingDraft | None:
        """Fetch the user's draft.

        Args:
            db: Async database session.
            user_id: Owner of the draft.
            for_update: Lock the row until the transaction ends
                (SELECT ... FOR UPDATE). Ignored by SQLite.

        Returns:
            OnboardingDraft if found, None otherwise.
        """
        stmt = select(OnboardingDraft).where(OnboardingDraft.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        user_id: str,
        current_step: int,
        data: dict[str, Any],
        is_completed: bool = False,
    ) -> OnboardingDraft:
        """Create the user's draft or overwrite the existing one.

        Overwrites current_step, data and is_completed and bumps updated_at.
        The draft id is kept across overwrites.

        Race safety: a concurrent first save for the same user makes the
        INSERT fail on the unique index. The INSERT runs inside a savepoint,
        so the session stays usable; the other writer's row is re-read and
        overwritten (last write wins).

        Args:
            db: Async database session.
            user_id: Owner of the draft.
            current_step: Wizard step (>= 1, enforced by a CHECK constraint).
            data: Structured draft document (JSON-safe dict).
            is_completed: Completion flag to store.

        Returns:
            The persisted draft.

        Raises:
            sqlalchemy.exc.IntegrityError: If the INSERT fails for a reason
                other than a concurrent first save.
        """
        draft = await OnboardingDraftRepository.get_by_user(db, user_id)
        if draft is None:
            try:
                async with db.begin_nested():
                    draft = OnboardingDraft(
                        user_id=user_id,
                        current_step=current_step,
                        data=data,
                        is_completed=is_completed,
                        updated_at=utc_now(),
                    )
                    db.add(draft)
                    await db.flush()
                await db.refresh(draft)
                return draft
            except IntegrityError:
                # Race condition: another request created the draft.
                # Savepoint was rolled back; session is still usable.
                draft = await OnboardingDraftRepository.get_by_user(db, user_id)
                if draft is None:
                    raise  # Can't recover, re-raise
                logger.info("Concurrent first save for user %s; overwriting", user_id)

        draft.current_step = current_step
        draft.data = data
        draft.is_completed = is_completed
        draft.updated_at = utc_now()
        await db.flush()
        await db.refresh(draft)
        return draft

    @staticmethod
    async def mark_completed(
        db: AsyncSession, draft: OnboardingDraft
    ) -> OnboardingDraft:
        """Flip the draft to its terminal state.

        Args:
            db: Async database session (same transaction as the profile insert).
            draft: Draft loaded in this session.

        Returns:
            The updated draft.
        """
        draft.is_completed = True
        draft.updated_at = utc_now()
        await db.flush()
        return draft
