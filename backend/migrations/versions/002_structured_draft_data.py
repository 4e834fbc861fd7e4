"""Convert onboarding drafts to structured JSON.

Revision ID: 002_structured_draft_data
Revises: 001_initial_schema
Create Date: 2026-09-28

Data migration with DDL:

1. Add onboarding_drafts.data (JSONB on PostgreSQL).
2. Convert every row's serialized_data string with upgrade_legacy_payload()
   into a schema_version 2 document.
3. Make data NOT NULL and drop serialized_data.

One-way: the legacy string format is not written back.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from app.services.draft_migration import upgrade_legacy_payload

revision: str = "002_structured_draft_data"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

_drafts = sa.table(
    "onboarding_drafts",
    sa.column("id", sa.Uuid()),
    sa.column("serialized_data", sa.Text()),
    sa.column("data", _JSON),
)


def upgrade() -> None:
    op.add_column("onboarding_drafts", sa.Column("data", _JSON, nullable=True))

    conn = op.get_bind()
    rows = conn.execute(sa.select(_drafts.c.id, _drafts.c.serialized_data)).all()
    for draft_id, serialized in rows:
        # LegacyDraftError aborts the migration: fix the row, then re-run.
        document = upgrade_legacy_payload(serialized).to_document()
        conn.execute(
            _drafts.update().where(_drafts.c.id == draft_id).values(data=document)
        )

    with op.batch_alter_table("onboarding_drafts") as batch:
        batch.alter_column("data", existing_type=_JSON, nullable=False)
        batch.drop_column("serialized_data")


def downgrade() -> None:
    raise NotImplementedError(
        "002_structured_draft_data is one-way; restore from backup to downgrade"
    )
