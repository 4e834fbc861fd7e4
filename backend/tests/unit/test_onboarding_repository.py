"""Tests for OnboardingDraftRepository.

Covers the one-draft-per-user upsert, the concurrent first save recovery
and the terminal flag flip.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.onboarding import OnboardingDraft
from app.repositories.onboarding_repository import OnboardingDraftRepository

_USER = "repo-user-1"
_OTHER_USER = "repo-user-2"
_DOC = {"schema_version": 2, "full_name": "Ada Lovelace"}
_PATCH_GET = (
    "app.repositories.onboarding_repository.OnboardingDraftRepository.get_by_user"
)


async def _count_drafts(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(OnboardingDraft)
        .where(OnboardingDraft.user_id == user_id)
    )
    return result.scalar_one()


class TestGetByUser:
    """Tests for OnboardingDraftRepository.get_by_user."""

    @pytest.mark.asyncio
    async def test_returns_none_without_draft(self, db_session: AsyncSession):
        """A user who never saved has no draft."""
        assert await OnboardingDraftRepository.get_by_user(db_session, _USER) is None

    @pytest.mark.asyncio
    async def test_is_scoped_to_user(self, db_session: AsyncSession):
        """Another user's draft is never returned."""
        await OnboardingDraftRepository.upsert(
            db_session, user_id=_OTHER_USER, current_step=1, data=_DOC
        )

        assert await OnboardingDraftRepository.get_by_user(db_session, _USER) is None

    @pytest.mark.asyncio
    async def test_for_update_returns_draft(self, db_session: AsyncSession):
        """Locking read returns the same draft (lock is a no-op on SQLite)."""
        created = await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=2, data=_DOC
        )

        locked = await OnboardingDraftRepository.get_by_user(
            db_session, _USER, for_update=True
        )

        assert locked is not None
        assert locked.id == created.id


class TestUpsert:
    """Tests for OnboardingDraftRepository.upsert."""

    @pytest.mark.asyncio
    async def test_creates_draft_on_first_save(self, db_session: AsyncSession):
        """First save inserts a draft with the given step and document."""
        draft = await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=1, data=_DOC
        )

        assert draft.id is not None
        assert draft.user_id == _USER
        assert draft.current_step == 1
        assert draft.data == _DOC
        assert draft.is_completed is False
        assert draft.updated_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_overwrites_existing_draft(self, db_session: AsyncSession):
        """Second save replaces step and document but keeps the row id."""
        first = await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=3, data=_DOC
        )
        first_id = first.id
        first_updated = first.updated_at

        second = await OnboardingDraftRepository.upsert(
            db_session,
            user_id=_USER,
            current_step=1,
            data={"schema_version": 2, "full_name": "Augusta Ada King"},
        )

        assert second.id == first_id
        assert second.current_step == 1
        assert second.data["full_name"] == "Augusta Ada King"
        assert second.updated_at >= first_updated
        assert await _count_drafts(db_session, _USER) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_save_overwrites_winner(
        self, db_session: AsyncSession
    ):
        """An INSERT that loses the race falls back to updating the winner's row."""
        winner = await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=1, data=_DOC
        )
        real_get = OnboardingDraftRepository.get_by_user
        # First lookup misses (the other writer has not committed yet),
        # the recovery lookup sees the winner's row.
        existing = await real_get(db_session, _USER)
        stale_then_real = AsyncMock(side_effect=[None, existing])

        with patch(_PATCH_GET, stale_then_real):
            draft = await OnboardingDraftRepository.upsert(
                db_session, user_id=_USER, current_step=4, data=_DOC
            )

        assert draft.id == winner.id
        assert draft.current_step == 4
        assert await _count_drafts(db_session, _USER) == 1

    @pytest.mark.asyncio
    async def test_reraises_when_conflicting_row_is_invisible(
        self, db_session: AsyncSession
    ):
        """If the conflicting row can't be re-read, the IntegrityError propagates."""
        await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=1, data=_DOC
        )

        with (
            patch(_PATCH_GET, AsyncMock(return_value=None)),
            pytest.raises(IntegrityError),
        ):
            await OnboardingDraftRepository.upsert(
                db_session, user_id=_USER, current_step=2, data=_DOC
            )

    @pytest.mark.asyncio
    async def test_step_below_one_violates_check(self, db_session: AsyncSession):
        """The CHECK constraint rejects a step of 0 at the storage level."""
        with pytest.raises(IntegrityError):
            await OnboardingDraftRepository.upsert(
                db_session, user_id=_USER, current_step=0, data=_DOC
            )


class TestMarkCompleted:
    """Tests for OnboardingDraftRepository.mark_completed."""

    @pytest.mark.asyncio
    async def test_flips_flag_and_bumps_timestamp(self, db_session: AsyncSession):
        """mark_completed sets is_completed and refreshes updated_at."""
        draft = await OnboardingDraftRepository.upsert(
            db_session, user_id=_USER, current_step=5, data=_DOC
        )
        before = draft.updated_at

        completed = await OnboardingDraftRepository.mark_completed(db_session, draft)

        assert completed.is_completed is True
        assert completed.updated_at >= before
        reloaded = await OnboardingDraftRepository.get_by_user(db_session, _USER)
        assert reloaded is not None
        assert reloaded.is_completed is True
