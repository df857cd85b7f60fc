"""Documents and document requests

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- documents (parsed files, full-text index on Postgres)
- document_requests (approval workflow)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JsonType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create document tables."""
    op.create_table(
        "documents",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("parsed_text", sa.Text(), nullable=True),
        sa.Column("parsed_metadata", JsonType, nullable=True),
        sa.Column("access_level", sa.Text(), server_default="public", nullable=False),
        sa.Column("allowed_departments", JsonType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "access_level IN ('public', 'department', 'restricted')",
            name="ck_documents_access_level",
        ),
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "CREATE INDEX idx_documents_parsed_text_fts ON documents "
            "USING GIN (to_tsvector('english', coalesce(parsed_text, '')))"
        )

    op.create_table(
        "document_requests",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("requester_email", sa.Text(), nullable=False),
        sa.Column("requester_department", sa.Text(), nullable=True),
        sa.Column("keyword", sa.Text(), nullable=False),
        sa.Column("approver_email", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("approved_document_id", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("sharing_link", sa.Text(), nullable=True),
        sa.Column("urgency", sa.Text(), server_default="normal", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_document_requests_status"
        ),
        sa.CheckConstraint(
            "urgency IN ('low', 'normal', 'high')", name="ck_document_requests_urgency"
        ),
    )
    op.create_index(
        "idx_document_requests_approver",
        "document_requests",
        ["approver_email", "status", "created_at"],
    )
    op.create_index(
        "idx_document_requests_requester",
        "document_requests",
        ["requester_email", "created_at"],
    )


def downgrade() -> None:
    """Drop document tables."""
    op.drop_index("idx_document_requests_requester", table_name="document_requests")
    op.drop_index("idx_document_requests_approver", table_name="document_requests")
    op.drop_table("document_requests")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_documents_parsed_text_fts")
    op.drop_table("documents")
