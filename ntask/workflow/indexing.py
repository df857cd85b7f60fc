"""Document indexing: parse an uploaded file and store it for search."""

import logging

from pydantic import BaseModel

from ntask.adapters.upstage import DocumentParseError, DocumentParser
from ntask.adapters.webhook import WebhookNotifier
from ntask.db.repositories import DocumentRepository
from ntask.errors import DownstreamUnavailableError, ValidationError
from ntask.models.documents import AccessLevel, Document, ParsedDocument
from ntask.models.webhooks import WebhookEvent, WebhookEventType

logger = logging.getLogger(__name__)


class IndexResult(BaseModel):
    """Stored document plus what the parser produced."""

    document: Document
    parsed_text_length: int
    metadata: dict


def split_departments(value: str | None) -> list[str]:
    """Comma-separated department names, trimmed, blanks dropped."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class DocumentIndexer:
    """Parses uploads with the configured parser and persists the result."""

    def __init__(
        self,
        documents: DocumentRepository,
        parser: DocumentParser | None,
        notifier: WebhookNotifier,
    ) -> None:
        self._documents = documents
        self._parser = parser
        self._notifier = notifier

    async def index_document(
        self,
        content: bytes | None,
        file_name: str | None,
        file_path: str | None,
        access_level: AccessLevel | str | None = None,
        allowed_departments: str | list[str] | None = None,
    ) -> IndexResult:
        """Parse and store one document.

        Raises:
            ValidationError: If the file or file path is missing, or the access level is unknown
            DownstreamUnavailableError: If no parser is configured or parsing fails
            PersistenceError: If the document cannot be stored
        """
        if content is None or not file_path:
            raise ValidationError("File and filePath are required")
        try:
            level = AccessLevel(access_level) if access_level else AccessLevel.public
        except ValueError as e:
            raise ValidationError(
                "accessLevel must be one of: public, department, restricted"
            ) from e
        if isinstance(allowed_departments, list):
            departments = [d.strip() for d in allowed_departments if d.strip()]
        else:
            departments = split_departments(allowed_departments)
        name = file_name or file_path.rsplit("/", 1)[-1]

        if self._parser is None:
            raise DownstreamUnavailableError("Document parser not configured")

        try:
            parsed: ParsedDocument = await self._parser.parse(content, name)
        except DocumentParseError as e:
            raise DownstreamUnavailableError(str(e)) from e

        metadata = parsed.metadata()
        document = await self._documents.create_document(
            file_name=name,
            file_path=file_path,
            parsed_text=parsed.full_text or None,
            parsed_metadata=metadata,
            access_level=level,
            allowed_departments=departments,
        )
        logger.info(
            "Document indexed",
            extra={
                "structured": {
                    "document_id": document.id,
                    "file_path": file_path,
                    "pages": metadata["pages"],
                }
            },
        )

        await self._notifier.notify(
            WebhookEvent(
                event=WebhookEventType.document_indexed,
                data={
                    "documentId": document.id,
                    "fileName": document.file_name,
                    "filePath": document.file_path,
                    "accessLevel": document.access_level.value,
                    "parsedTextLength": len(parsed.full_text),
                },
            )
        )

        return IndexResult(
            document=document,
            parsed_text_length=len(parsed.full_text),
            metadata=metadata,
        )
