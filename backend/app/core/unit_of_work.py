"""Explicit transactional scope over one database session.

Cross-table writes that must land together (profile insert + draft flag flip)
run inside a UnitOfWork. The scope is acquired with ``async with`` and is
released on every exit path:

- clean exit: commit
- any exception: rollback, then re-raise
- always: close the session

Usage:
    async with UnitOfWork(session_factory) as uow:
        draft = await OnboardingDraftRepository.get_by_user(uow.session, user_id)
        ...

The repositories never commit; they only flush. Commit and rollback belong
to the UnitOfWork.
"""

import logging
from types import TracebackType

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncSessionTransaction,
    async_sessionmaker,
)

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Async context manager owning a session and its single transaction.

    A UnitOfWork is single-use: entering it twice raises RuntimeError.
    """

    __slots__ = ("_factory", "_session", "_transaction", "_used")

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with the factory that will provide the session.

        Args:
            session_factory: Async session factory bound to an engine.
        """
        self._factory = session_factory
        self._session: AsyncSession | None = None
        self._transaction: AsyncSessionTransaction | None = None
        self._used = False

    @property
    def session(self) -> AsyncSession:
        """The session bound to this unit of work.

        Raises:
            RuntimeError: If accessed outside the ``async with`` block.
        """
        if self._session is None:
            msg = "UnitOfWork session accessed outside of its scope"
            raise RuntimeError(msg)
        return self._session

    async def __aenter__(self) -> "UnitOfWork":
        if self._used:
            msg = "UnitOfWork cannot be re-entered"
            raise RuntimeError(msg)
        self._used = True
        self._session = self._factory()
        self._transaction = await self._session.begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self.session
        transaction = self._transaction
        try:
            if transaction is not None and transaction.is_active:
                if exc_type is None:
                    await transaction.commit()
                else:
                    logger.debug(
                        "Rolling back unit of work after %s", exc_type.__name__
                    )
                    await transaction.rollback()
        finally:
            await session.close()
            self._session = None
            self._transaction = None
