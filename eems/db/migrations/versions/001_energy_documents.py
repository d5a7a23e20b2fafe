"""
Initial schema: create the energy_documents table.

One row per (collection, document_id): a load category and a local date.
The aggregate itself lives in the JSON ``data`` column (JSONB on
PostgreSQL).

Revision ID: 001
Revises: None
Create Date: 2026-10-19

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create energy_documents with composite PK (collection, document_id)."""
    op.create_table(
        "energy_documents",
        sa.Column("collection", sa.Text(), nullable=False),
        sa.Column("document_id", sa.Text(), nullable=False),
        sa.Column(
            "data",
            sa.JSON().with_variant(JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("collection", "document_id"),
    )


def downgrade() -> None:
    """Drop energy_documents."""
    op.drop_table("energy_documents")
