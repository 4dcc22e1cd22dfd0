"""Add documents.extraction_status and documents.failure_reason.

Revision ID: 002
Revises: 001
Create Date: 2026-09-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "documents",
        sa.Column("extraction_status", sa.String(16), nullable=False, server_default="pending"),
    )
    op.add_column("documents", sa.Column("failure_reason", sa.String(500), nullable=True))
    # Rows extracted before status tracking already carry content
    op.execute("UPDATE documents SET extraction_status = 'complete' WHERE content IS NOT NULL")


def downgrade() -> None:
    op.drop_column("documents", "failure_reason")
    op.drop_column("documents", "extraction_status")
