"""In-memory implementations of repository interfaces."""

import threading
import uuid
from typing import Any

from ntask.db.search import score_text, tokenize
from ntask.models.common import utcnow
from ntask.models.documents import (
    AccessLevel,
    Document,
    DocumentRequest,
    DocumentSearchResult,
    RequestStatus,
    Urgency,
)

IMMUTABLE_DOCUMENT_FIELDS = frozenset({"id", "created_at", "updated_at"})


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

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
        document = Document(
            id=document_id or str(uuid.uuid4()),
            file_name=file_name,
            file_path=file_path,
            parsed_text=parsed_text,
            parsed_metadata=parsed_metadata,
            access_level=access_level,
            allowed_departments=list(allowed_departments or []),
        )
        self._documents[document.id] = document
        return document

    async def search_documents(
        self, keyword: str, department: str | None = None, limit: int = 10
    ) -> list[DocumentSearchResult]:
        """Search documents by counting query tokens found in the parsed text."""
        tokens = tokenize(keyword)
        if not tokens:
            return []

        scored: list[tuple[int, Document, float]] = []
        for order, document in enumerate(self._documents.values()):
            if department and not (
                document.access_level == AccessLevel.public
                or department in document.allowed_departments
            ):
                continue

            score = score_text(tokens, document.parsed_text)
            if score > 0:
                scored.append((order, document, score))

        # Sort by score descending, then insertion order for determinism
        scored.sort(key=lambda x: (-x[2], x[0]))

        return [
            DocumentSearchResult(document=document, relevance_score=score)
            for _, document, score in scored[:limit]
        ]

    async def get_document(self, document_id: str) -> Document | None:
        """Get document by ID."""
        return self._documents.get(document_id)

    async def update_document(self, document_id: str, **fields: Any) -> Document | None:
        """Update mutable document fields."""
        document = self._documents.get(document_id)
        if document is None:
            return None

        changes = {k: v for k, v in fields.items() if k not in IMMUTABLE_DOCUMENT_FIELDS}
        if not changes:
            return None

        updated = Document.model_validate(
            {**document.model_dump(), **changes, "updated_at": utcnow()}
        )
        self._documents[document_id] = updated
        return updated


class InMemoryDocumentRequestRepository:
    """In-memory implementation of DocumentRequestRepository."""

    def __init__(self) -> None:
        self._requests: dict[str, DocumentRequest] = {}
        # Guards the pending check-and-set in transition()
        self._lock = threading.Lock()

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
        request = DocumentRequest(
            id=str(uuid.uuid4()),
            requester_email=requester_email,
            requester_department=requester_department,
            keyword=keyword,
            approver_email=approver_email,
            status=RequestStatus.pending,
            urgency=urgency,
        )
        self._requests[request.id] = request
        return request

    async def get_request(self, request_id: str) -> DocumentRequest | None:
        """Get request by ID."""
        return self._requests.get(request_id)

    async def transition(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        approved_document_id: str | None = None,
        rejection_reason: str | None = None,
        sharing_link: str | None = None,
    ) -> DocumentRequest | None:
        """Move a pending request to ``status``; None if it is not pending."""
        with self._lock:
            request = self._requests.get(request_id)
            if request is None or request.status != RequestStatus.pending:
                return None

            updated = request.model_copy(
                update={
                    "status": status,
                    "approved_document_id": approved_document_id,
                    "rejection_reason": rejection_reason,
                    "sharing_link": sharing_link,
                    "updated_at": utcnow(),
                }
            )
            self._requests[request_id] = updated
            return updated

    async def list_by_approver(
        self, approver_email: str, status: RequestStatus | None = None
    ) -> list[DocumentRequest]:
        """List requests for an approver, newest first."""
        results = [
            r
            for r in self._requests.values()
            if r.approver_email == approver_email and (status is None or r.status == status)
        ]
        results.sort(key=lambda r: r.created_at, reverse=True)
        return results

    async def list_by_requester(self, requester_email: str) -> list[DocumentRequest]:
        """List requests by a requester, newest first."""
        results = [r for r in self._requests.values() if r.requester_email == requester_email]
        results.sort(key=lambda r: r.created_at, reverse=True)
        return results
