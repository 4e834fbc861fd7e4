"""Create onboarding, profile and notification tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-14

Tables:
- onboarding_drafts: one per user; draft stored as an opaque JSON string in
  serialized_data (converted to structured JSON by 002)
- professional_profiles + work_experiences, educations, profile_skills
  (children cascade-deleted with their profile)
- notifications with category and collapse_key for progress dedup
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _profile_fk() -> sa.Column:
    return sa.Column(
        "profile_id",
        sa.Uuid(),
        sa.ForeignKey("professional_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # =========================================================================
    # Onboarding drafts
    # =========================================================================

    op.create_table(
        "onboarding_drafts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("current_step", sa.Integer(), nullable=False),
        sa.Column("serialized_data", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "is_completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "current_step >= 1",
            name="ck_onboarding_drafts_current_step_positive",
        ),
        sa.UniqueConstraint("user_id", name="uq_onboarding_drafts_user_id"),
    )

    # =========================================================================
    # Professional profiles
    # =========================================================================

    op.create_table(
        "professional_profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_id", name="uq_professional_profiles_user_id"),
    )

    op.create_table(
        "work_experiences",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _profile_fk(),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_work_experiences_profile_id", "work_experiences", ["profile_id"]
    )

    op.create_table(
        "educations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _profile_fk(),
        sa.Column("institution", sa.String(255), nullable=False),
        sa.Column("degree", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("graduation_date", sa.Date(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_educations_profile_id", "educations", ["profile_id"])

    op.create_table(
        "profile_skills",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _profile_fk(),
        sa.Column("skill_name", sa.String(255), nullable=False),
        sa.Column("level", sa.String(50), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_profile_skills_profile_id", "profile_skills", ["profile_id"])

    # =========================================================================
    # Notifications
    # =========================================================================

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="info"),
        sa.Column(
            "category", sa.String(50), nullable=False, server_default="ad_hoc"
        ),
        sa.Column("collapse_key", sa.String(50), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("timestamp"),
        sa.Column("data", _JSON, nullable=True),
        sa.CheckConstraint(
            "type IN ('info', 'success', 'warning', 'error')",
            name="ck_notifications_type",
        ),
        sa.CheckConstraint(
            "category IN ('onboarding_progress', 'onboarding_completed', 'ad_hoc')",
            name="ck_notifications_category",
        ),
        # At most one live record per (user, collapse_key). NULL keys
        # (appending categories) never collide.
        sa.UniqueConstraint(
            "user_id",
            "collapse_key",
            name="uq_notifications_user_collapse_key",
        ),
    )
    op.create_index(
        "ix_notifications_user_timestamp", "notifications", ["user_id", "timestamp"]
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_user_timestamp", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_profile_skills_profile_id", table_name="profile_skills")
    op.drop_table("profile_skills")
    op.drop_index("ix_educations_profile_id", table_name="educations")
    op.drop_table("educations")
    op.drop_index("ix_work_experiences_profile_id", table_name="work_experiences")
    op.drop_table("work_experiences")
    op.drop_table("professional_profiles")
    op.drop_table("onboarding_drafts")
