"""Professional profile models.

A ProfessionalProfile is the durable, normalized result of a completed
onboarding. Its children are owned: they are created with the profile,
ordered by ``display_order``, and deleted with it (ORM delete-orphan
cascade plus ON DELETE CASCADE foreign keys).
"""

import uuid
from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"
_PROFILE_FK = "professional_profiles.id"


class ProfessionalProfile(Base, TimestampMixin):
    """Materialized professional profile, at most one per user.

    Attributes:
        id: UUID primary key.
        user_id: Owner. UNIQUE.
        full_name: Display name, never blank.
        summary: Free-form professional summary.
        work_experiences: Ordered employment entries.
        educations: Ordered education entries.
        skills: Ordered skills.
    """

    __tablename__ = "professional_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    summary: Mapped[str] = mapped_column(
        Text,
        default="",
        server_default=text("''"),
        nullable=False,
    )

    # Relationships
    work_experiences: Mapped[list["WorkExperience"]] = relationship(
        "WorkExperience",
        back_populates="profile",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
        order_by="WorkExperience.display_order",
    )
    educations: Mapped[list["Education"]] = relationship(
        "Education",
        back_populates="profile",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
        order_by="Education.display_order",
    )
    skills: Mapped[list["ProfileSkill"]] = relationship(
        "ProfileSkill",
        back_populates="profile",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
        order_by="ProfileSkill.display_order",
    )


class WorkExperience(Base):
    """Employment entry on a profile."""

    __tablename__ = "work_experiences"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey(_PROFILE_FK, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        default="",
        server_default=text("''"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default=text("0"),
        nullable=False,
    )

    profile: Mapped["ProfessionalProfile"] = relationship(
        "ProfessionalProfile",
        back_populates="work_experiences",
    )


class Education(Base):
    """Education entry on a profile."""

    __tablename__ = "educations"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey(_PROFILE_FK, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    institution: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    degree: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    graduation_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default=text("0"),
        nullable=False,
    )

    profile: Mapped["ProfessionalProfile"] = relationship(
        "ProfessionalProfile",
        back_populates="educations",
    )


class ProfileSkill(Base):
    """Skill on a profile. ``level`` is optional and unset by onboarding."""

    __tablename__ = "profile_skills"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey(_PROFILE_FK, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    skill_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    level: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default=text("0"),
        nullable=False,
    )

    profile: Mapped["ProfessionalProfile"] = relationship(
        "ProfessionalProfile",
        back_populates="skills",
    )
