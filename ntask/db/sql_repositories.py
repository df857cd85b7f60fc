"""SQL implementations of repository interfaces."""

import logging
from typing import Any

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ntask.db.models import DocumentRequestRow, DocumentRow
from ntask.db.search import score_text, tokenize
from ntask.errors import PersistenceError
from ntask.models.common import utcnow
from ntask.models.documents import (
    AccessLevel,
    Document,
    DocumentRequest,
    DocumentSearchResult,
    RequestStatus,
    Urgency,
)

logger = logging.getLogger(__name__)

IMMUTABLE_DOCUMENT_FIELDS = frozenset({"id", "created_at", "updated_at"})
TEXT_SEARCH_CONFIG = "english"


def _to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        file_name=row.file_name,
        file_path=row.file_path,
        parsed_text=row.parsed_text,
        parsed_metadata=row.parsed_metadata,
        access_level=AccessLevel(row.access_level),
        allowed_departments=list(row.allowed_departments or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_request(row: DocumentRequestRow) -> DocumentRequest:
    return DocumentRequest(
        id=row.id,
        requester_email=row.requester_email,
        requester_department=row.requester_department,
        keyword=row.keyword,
        approver_email=row.approver_email,
        status=RequestStatus(row.status),
        approved_document_id=row.approved_document_id,
        rejection_reason=row.rejection_reason,
        sharing_link=row.sharing_link,
        urgency=Urgency(row.urgency),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_document(
        self,
        *,
        document_id: str | None = None,
        file_name: str,
        file_path: str,
        parsed_text: str | None,
        parsed_metadata: dict[str, Any] | None,
        access_level: AccessLevel = AccessLevel.public,
        allowed_departments: list[str] | None = None,
    ) -> Document:
        """Create a new document."""
        row = DocumentRow(
            file_name=file_name,
            file_path=file_path,
            parsed_text=parsed_text,
            parsed_metadata=parsed_metadata,
            access_level=access_level.value,
            allowed_departments=list(allowed_departments or []),
        )
        if document_id:
            row.id = document_id

        try:
            self._session.add(row)
            await self._session.commit()
            await self._session.refresh(row)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to save document: {e}") from e

        return _to_document(row)

    async def search_documents(
        self, keyword: str, department: str | None = None, limit: int = 10
    ) -> list[DocumentSearchResult]:
        """Search parsed text, using Postgres full-text search when available."""
        if not tokenize(keyword):
            return []

        try:
            if self._session.get_bind().dialect.name == "postgresql":
                return await self._search_fulltext(keyword, department, limit)
            return await self._search_tokens(keyword, department, limit)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to search documents: {e}") from e

    async def _search_fulltext(
        self, keyword: str, department: str | None, limit: int
    ) -> list[DocumentSearchResult]:
        vector = func.to_tsvector(TEXT_SEARCH_CONFIG, DocumentRow.parsed_text)
        query = func.plainto_tsquery(TEXT_SEARCH_CONFIG, keyword)
        relevance = func.ts_rank(vector, query).label("relevance")

        stmt = select(DocumentRow, relevance).where(vector.op("@@")(query))
        if department:
            stmt = stmt.where(
                or_(
                    DocumentRow.access_level == AccessLevel.public.value,
                    DocumentRow.allowed_departments.contains([department]),
                )
            )
        stmt = stmt.order_by(relevance.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [
            DocumentSearchResult(document=_to_document(row), relevance_score=float(score))
            for row, score in result.all()
        ]

    async def _search_tokens(
        self, keyword: str, department: str | None, limit: int
    ) -> list[DocumentSearchResult]:
        tokens = tokenize(keyword)
        result = await self._session.execute(
            select(DocumentRow).order_by(DocumentRow.created_at, DocumentRow.id)
        )

        scored: list[tuple[int, DocumentRow, float]] = []
        for order, row in enumerate(result.scalars().all()):
            if department and not (
                row.access_level == AccessLevel.public.value
                or department in (row.allowed_departments or [])
            ):
                continue

            score = score_text(tokens, row.parsed_text)
            if score > 0:
                scored.append((order, row, score))

        scored.sort(key=lambda x: (-x[2], x[0]))

        return [
            DocumentSearchResult(document=_to_document(row), relevance_score=score)
            for _, row, score in scored[:limit]
        ]

    async def get_document(self, document_id: str) -> Document | None:
        """Get document by ID."""
        try:
            row = await self._session.get(DocumentRow, document_id)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to load document: {e}") from e
        if row is None:
            return None
        return _to_document(row)

    async def update_document(self, document_id: str, **fields: Any) -> Document | None:
        """Update mutable document fields."""
        try:
            row = await self._session.get(DocumentRow, document_id)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to load document: {e}") from e
        if row is None:
            return None

        changes = {k: v for k, v in fields.items() if k not in IMMUTABLE_DOCUMENT_FIELDS}
        if not changes:
            return None

        for key, value in changes.items():
            if isinstance(value, AccessLevel):
                value = value.value
            setattr(row, key, value)

        try:
            await self._session.commit()
            await self._session.refresh(row)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to update document: {e}") from e

        return _to_document(row)


class SqlDocumentRequestRepository:
    """SQL implementation of DocumentRequestRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_request(
        self,
        *,
        requester_email: str,
        keyword: str,
        approver_email: str,
        requester_department: str | None = None,
        urgency: Urgency = Urgency.normal,
    ) -> DocumentRequest:
        """Create a new pending request."""
        row = DocumentRequestRow(
            requester_email=requester_email,
            requester_department=requester_department,
            keyword=keyword,
            approver_email=approver_email,
            status=RequestStatus.pending.value,
            urgency=urgency.value,
        )

        try:
            self._session.add(row)
            await self._session.commit()
            await self._session.refresh(row)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to save document request: {e}") from e

        return _to_request(row)

    async def get_request(self, request_id: str) -> DocumentRequest | None:
        """Get request by ID."""
        try:
            row = await self._session.get(DocumentRequestRow, request_id)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to load document request: {e}") from e
        if row is None:
            return None
        return _to_request(row)

    async def transition(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        approved_document_id: str | None = None,
        rejection_reason: str | None = None,
        sharing_link: str | None = None,
    ) -> DocumentRequest | None:
        """Move a pending request to ``status`` with a conditional update."""
        stmt = (
            update(DocumentRequestRow)
            .where(
                DocumentRequestRow.id == request_id,
                DocumentRequestRow.status == RequestStatus.pending.value,
            )
            .values(
                status=status.value,
                approved_document_id=approved_document_id,
                rejection_reason=rejection_reason,
                sharing_link=sharing_link,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to update document request: {e}") from e

        if result.rowcount == 0:
            logger.info(
                "Request transition skipped",
                extra={"structured": {"request_id": request_id, "status": status.value}},
            )
            return None

        try:
            row = await self._session.get(
                DocumentRequestRow, request_id, populate_existing=True
            )
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to load document request: {e}") from e
        if row is None:
            return None
        return _to_request(row)

    async def list_by_approver(
        self, approver_email: str, status: RequestStatus | None = None
    ) -> list[DocumentRequest]:
        """List requests for an approver, newest first."""
        stmt = select(DocumentRequestRow).where(
            DocumentRequestRow.approver_email == approver_email
        )
        if status is not None:
            stmt = stmt.where(DocumentRequestRow.status == status.value)
        return await self._list(stmt.order_by(DocumentRequestRow.created_at.desc()))

    async def list_by_requester(self, requester_email: str) -> list[DocumentRequest]:
        """List requests by a requester, newest first."""
        stmt = (
            select(DocumentRequestRow)
            .where(DocumentRequestRow.requester_email == requester_email)
            .order_by(DocumentRequestRow.created_at.desc())
        )

        return await self._list(stmt)

    async def _list(self, stmt: Select) -> list[DocumentRequest]:
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to list document requests: {e}") from e
        return [_to_request(row) for row in result.scalars().all()]
