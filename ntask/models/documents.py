"""Document and document request domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ntask.models.common import utcnow


class AccessLevel(str, Enum):
    """Who may see a document in search results."""

    public = "public"
    department = "department"
    restricted = "restricted"


class RequestStatus(str, Enum):
    """Document request lifecycle. approved and rejected are terminal."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Urgency(str, Enum):
    """Requester-declared urgency."""

    low = "low"
    normal = "normal"
    high = "high"


class ApprovalAction(str, Enum):
    """Action an approver can take on a pending request."""

    approve = "approve"
    reject = "reject"


class Document(BaseModel):
    """Indexed document."""

    id: str
    file_name: str
    file_path: str
    parsed_text: str | None = None
    parsed_metadata: dict[str, Any] | None = None
    access_level: AccessLevel = AccessLevel.public
    allowed_departments: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DocumentSearchResult(BaseModel):
    """Document with its relevance score."""

    document: Document
    relevance_score: float


class DocumentRequest(BaseModel):
    """A question routed to an approver who can answer it with a document."""

    id: str
    requester_email: str
    requester_department: str | None = None
    keyword: str
    approver_email: str
    status: RequestStatus = RequestStatus.pending
    approved_document_id: str | None = None
    rejection_reason: str | None = None
    sharing_link: str | None = None
    urgency: Urgency = Urgency.normal
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ParsedTable(BaseModel):
    """Table detected by the document parser."""

    page: int
    rows: int = 0
    cols: int = 0
    data: Any = None


class ParsedPage(BaseModel):
    """Text of a single parsed page (1-based)."""

    page: int
    text: str


class ParsedDocument(BaseModel):
    """Document parser output: full text plus page/table structure."""

    full_text: str
    pages: list[ParsedPage] = Field(default_factory=list)
    tables: list[ParsedTable] = Field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        """Metadata stored alongside the document."""
        return {
            "pages": len(self.pages),
            "tables": [table.model_dump() for table in self.tables],
        }
