"""Repository for professional profile operations.

Provides database access for professional_profiles and its owned children
(work_experiences, educations, profile_skills).
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from app.models.profile import ProfessionalProfile


def _with_children(stmt: Select) -> Select:
    """Eager-load all child collections (async sessions cannot lazy-load)."""
    return stmt.options(
        selectinload(ProfessionalProfile.work_experiences),
        selectinload(ProfessionalProfile.educations),
        selectinload(ProfessionalProfile.skills),
    ).execution_options(populate_existing=True)


class ProfessionalProfileRepository:
    """Stateless repository for ProfessionalProfile table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(
        db: AsyncSession, profile_id: uuid.UUID
    ) -> ProfessionalProfile | None:
        """Fetch a profile with its children by primary key.

        Args:
            db: Async database session.
            profile_id: UUID primary key.

        Returns:
            ProfessionalProfile if found, None otherwise.
        """
        stmt = _with_children(
            select(ProfessionalProfile).where(ProfessionalProfile.id == profile_id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user(
        db: AsyncSession, user_id: str
    ) -> ProfessionalProfile | None:
        """Fetch a user's profile with its children.

        Args:
            db: Async database session.
            user_id: Owner of the profile.

        Returns:
            ProfessionalProfile if found, None otherwise.
        """
        stmt = _with_children(
            select(ProfessionalProfile).where(
                ProfessionalProfile.user_id == user_id
            )
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def exists_for_user(db: AsyncSession, user_id: str) -> bool:
        """Check whether the user already has a profile (no child loading)."""
        stmt = select(ProfessionalProfile.id).where(
            ProfessionalProfile.user_id == user_id
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def create(
        db: AsyncSession, profile: ProfessionalProfile
    ) -> ProfessionalProfile:
        """Insert a fully built profile and all of its children.

        The profile and its children are flushed together; a failure on
        any row aborts the flush and leaves nothing behind once the
        caller rolls back.

        Args:
            db: Async database session.
            profile: Transient profile with children attached.

        Returns:
            The persisted profile, re-read with its children loaded.

        Raises:
            sqlalchemy.exc.IntegrityError: If the user already has a profile.
        """
        db.add(profile)
        await db.flush()
        created = await ProfessionalProfileRepository.get_by_id(db, profile.id)
        if created is None:  # pragma: no cover - flushed row is visible
            msg = f"Profile {profile.id} vanished after flush"
            raise RuntimeError(msg)
        return created
