"""Tests for notification retention cleanup and the purge script."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notification import NotificationCategory
from app.repositories.notification_repository import NotificationRepository
from app.services.notification_retention import (
    CleanupError,
    purge_old_notifications,
)
from scripts.purge_notifications import _parse_args, run_purge

_USER = "retention-user"
_NOW = datetime(2026, 6, 30, 12, 0, tzinfo=UTC)


async def _seed(db: AsyncSession, *ages_in_days: int) -> None:
    for age in ages_in_days:
        await NotificationRepository.create(
            db,
            user_id=_USER,
            title="t",
            message=f"{age} days old",
            type="info",
            category=NotificationCategory.AD_HOC.value,
            timestamp=_NOW - timedelta(days=age),
        )


class TestPurgeOldNotifications:
    @pytest.mark.asyncio
    async def test_default_window_is_thirty_days(self, db_session: AsyncSession):
        await _seed(db_session, 45, 31, 29, 1)

        result = await purge_old_notifications(db_session, now=_NOW)

        assert result.deleted == 2
        assert result.cutoff == _NOW - timedelta(days=30)
        remaining = await NotificationRepository.list_for_user(db_session, _USER)
        assert [n.message for n in remaining] == ["1 days old", "29 days old"]

    @pytest.mark.asyncio
    async def test_custom_window(self, db_session: AsyncSession):
        await _seed(db_session, 10, 3)

        result = await purge_old_notifications(db_session, 7, now=_NOW)

        assert result.deleted == 1

    @pytest.mark.asyncio
    async def test_negative_window_is_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match=">= 0"):
            await purge_old_notifications(db_session, -1)

    @pytest.mark.asyncio
    async def test_database_error_becomes_cleanup_error(
        self, db_session: AsyncSession
    ):
        failing = AsyncMock(side_effect=OperationalError("DELETE", {}, Exception()))

        with (
            patch(
                "app.services.notification_retention."
                "NotificationRepository.delete_older_than",
                failing,
            ),
            pytest.raises(CleanupError) as exc_info,
        ):
            await purge_old_notifications(db_session, now=_NOW)

        assert exc_info.value.code == "CLEANUP_ERROR"


class TestPurgeScript:
    @pytest.mark.asyncio
    async def test_run_purge_commits(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with session_factory() as db:
            await _seed(db, 400)
            await db.commit()

        async with session_factory() as db:
            result = await run_purge(db, 30)

        assert result.deleted == 1
        async with session_factory() as db:
            assert await NotificationRepository.list_for_user(db, _USER) == []

    @pytest.mark.asyncio
    async def test_dry_run_rolls_back(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with session_factory() as db:
            await _seed(db, 400)
            await db.commit()

        async with session_factory() as db:
            result = await run_purge(db, 30, dry_run=True)

        assert result.deleted == 1
        async with session_factory() as db:
            assert len(await NotificationRepository.list_for_user(db, _USER)) == 1

    def test_parse_args(self):
        args = _parse_args(["--days", "7", "--dry-run"])

        assert args.days == 7
        assert args.dry_run is True

    def test_parse_args_defaults(self):
        args = _parse_args([])

        assert args.days is None
        assert args.dry_run is False
