"""SQLAlchemy ORM models for documents and document requests."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DocumentRow(Base):
    """Document table - parsed files available to document requests."""

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "access_level IN ('public', 'department', 'restricted')",
            name="ck_documents_access_level",
        ),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    parsed_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    parsed_metadata: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)
    access_level: Mapped[str] = mapped_column(Text, nullable=False, default="public")
    allowed_departments: Mapped[list[str]] = mapped_column(JsonType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )


class DocumentRequestRow(Base):
    """Document request table - approval workflow state."""

    __tablename__ = "document_requests"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_document_requests_status"
        ),
        CheckConstraint(
            "urgency IN ('low', 'normal', 'high')", name="ck_document_requests_urgency"
        ),
        Index("idx_document_requests_approver", "approver_email", "status", "created_at"),
        Index("idx_document_requests_requester", "requester_email", "created_at"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    requester_email: Mapped[str] = mapped_column(Text, nullable=False)
    requester_department: Mapped[str | None] = mapped_column(Text, nullable=True)
    keyword: Mapped[str] = mapped_column(Text, nullable=False)
    approver_email: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    approved_document_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    sharing_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    urgency: Mapped[str] = mapped_column(Text, nullable=False, default="normal")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )
