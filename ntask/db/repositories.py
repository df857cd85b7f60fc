"""Repository protocol interfaces for data access."""

from typing import Any, Protocol

from ntask.models.documents import (
    AccessLevel,
    Document,
    DocumentRequest,
    DocumentSearchResult,
    RequestStatus,
    Urgency,
)


class DocumentRepository(Protocol):
    """Repository for indexed documents."""

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
        """Persist a parsed document.

        Raises:
            PersistenceError: If the write fails
        """
        ...

    async def search_documents(
        self, keyword: str, department: str | None = None, limit: int = 10
    ) -> list[DocumentSearchResult]:
        """Full-text search over parsed text.

        Args:
            keyword: Free-form query
            department: When set, only public documents or documents whose
                allowed_departments include it are returned
            limit: Maximum number of results

        Returns:
            Matches ordered by descending relevance
        """
        ...

    async def get_document(self, document_id: str) -> Document | None:
        """Get document by ID."""
        ...

    async def update_document(self, document_id: str, **fields: Any) -> Document | None:
        """Update mutable document fields (everything except id and timestamps).

        Returns:
            Updated document or None if not found
        """
        ...


class DocumentRequestRepository(Protocol):
    """Repository for document requests."""

    async def create_request(
        self,
        *,
        requester_email: str,
        keyword: str,
        approver_email: str,
        requester_department: str | None = None,
        urgency: Urgency = Urgency.normal,
    ) -> DocumentRequest:
        """Create a pending request.

        Raises:
            PersistenceError: If the write fails
        """
        ...

    async def get_request(self, request_id: str) -> DocumentRequest | None:
        """Get request by ID."""
        ...

    async def transition(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        approved_document_id: str | None = None,
        rejection_reason: str | None = None,
        sharing_link: str | None = None,
    ) -> DocumentRequest | None:
        """Move a pending request to a terminal status.

        The pending check and the write are a single step, so at most one
        caller can move a given request out of pending.

        Returns:
            Updated request, or None if the request is missing or no longer pending

        Raises:
            PersistenceError: If the write fails
        """
        ...

    async def list_by_approver(
        self, approver_email: str, status: RequestStatus | None = None
    ) -> list[DocumentRequest]:
        """Requests addressed to an approver, newest first."""
        ...

    async def list_by_requester(self, requester_email: str) -> list[DocumentRequest]:
        """Requests submitted by a requester, newest first."""
        ...
