"""Tests for UnitOfWork transactional scope."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.unit_of_work import UnitOfWork
from app.repositories.onboarding_repository import OnboardingDraftRepository

_USER = "uow-user"
_DOC = {"schema_version": 2}


async def _exists(session_factory: async_sessionmaker[AsyncSession]) -> bool:
    async with session_factory() as db:
        return await OnboardingDraftRepository.get_by_user(db, _USER) is not None


class TestUnitOfWork:
    @pytest.mark.asyncio
    async def test_commits_on_clean_exit(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with UnitOfWork(session_factory) as uow:
            await OnboardingDraftRepository.upsert(
                uow.session, user_id=_USER, current_step=1, data=_DOC
            )

        assert await _exists(session_factory) is True

    @pytest.mark.asyncio
    async def test_rolls_back_on_exception(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        with pytest.raises(RuntimeError, match="boom"):
            async with UnitOfWork(session_factory) as uow:
                await OnboardingDraftRepository.upsert(
                    uow.session, user_id=_USER, current_step=1, data=_DOC
                )
                raise RuntimeError("boom")

        assert await _exists(session_factory) is False

    @pytest.mark.asyncio
    async def test_session_unavailable_outside_scope(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        uow = UnitOfWork(session_factory)

        with pytest.raises(RuntimeError, match="outside of its scope"):
            _ = uow.session

        async with uow:
            pass

        with pytest.raises(RuntimeError, match="outside of its scope"):
            _ = uow.session

    @pytest.mark.asyncio
    async def test_cannot_be_reentered(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        uow = UnitOfWork(session_factory)
        async with uow:
            pass

        with pytest.raises(RuntimeError, match="re-entered"):
            async with uow:
                pass

    @pytest.mark.asyncio
    async def test_closes_session_on_every_exit(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        """The session is closed (no transaction left open) after the scope."""
        uow = UnitOfWork(session_factory)
        async with uow:
            session = uow.session

        assert session.in_transaction() is False
