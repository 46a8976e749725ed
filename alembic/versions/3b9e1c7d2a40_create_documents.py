"""create documents table

Revision ID: 3b9e1c7d2a40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("key", sa.String(length=512), primary_key=True),
        sa.Column("collection", sa.String(length=64), nullable=False),
        sa.Column("body", postgresql.JSONB(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_documents_collection", "documents", ["collection"])


def downgrade() -> None:
    op.drop_index("ix_documents_collection", table_name="documents")
    op.drop_table("documents")
