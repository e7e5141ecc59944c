"""Key-value storage table.

Creates app_storage: one JSON-serialized document per key, upserted by the
storage service.

Revision ID: 001_app_storage
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_app_storage"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the app_storage table."""
    op.create_table(
        "app_storage",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_app_storage_updated_at", "app_storage", ["updated_at"])


def downgrade() -> None:
    """Drop the app_storage table."""
    op.drop_index("ix_app_storage_updated_at", table_name="app_storage")
    op.drop_table("app_storage")
