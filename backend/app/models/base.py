"""SQLAlchemy base classes and common mixins.

Defines the declarative base, portable column types and the reusable
timestamp mixin shared by drafts, profiles and notifications.

Column types are chosen so the same metadata runs on PostgreSQL (production,
asyncpg) and SQLite (test suite, aiosqlite): ``Uuid`` instead of the
PostgreSQL-only UUID type, JSON with a JSONB variant, and a timezone-aware
DateTime decorator.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# JSONB on PostgreSQL (indexable, binary storage), plain JSON elsewhere.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class AwareDateTime(TypeDecorator[datetime]):
    """DateTime(timezone=True) that always returns aware datetimes.

    SQLite stores timestamps without an offset; values read back are
    naive. Naive values are interpreted as UTC in both directions so that
    comparisons between stored and freshly created timestamps never mix
    naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value

    def process_result_value(
        self, value: Any | None, dialect: Dialect
    ) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        datetime: AwareDateTime(),
        uuid.UUID: Uuid(),
    }


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns.

    Values are generated in Python so they are available right after a
    flush without a refresh round-trip; the server default covers rows
    written outside the ORM (migrations, manual fixes).

    Attributes:
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last modified. Updated
            on each ORM update.
    """

    created_at: Mapped[datetime] = mapped_column(
        AwareDateTime(),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )
