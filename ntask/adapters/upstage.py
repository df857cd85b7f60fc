"""Document parser adapter using the Upstage Document Parse API."""

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from ntask.config import Settings
from ntask.models.documents import ParsedDocument, ParsedPage, ParsedTable

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xls": "application/vnd.ms-excel",
    "txt": "text/plain",
}


class DocumentParseError(Exception):
    """The parser rejected the file or returned an unusable response."""


class DocumentParser(Protocol):
    """Turns an uploaded file into text plus page/table structure."""

    async def parse(self, content: bytes, file_name: str) -> ParsedDocument:
        """Parse ``content``.

        Raises:
            DocumentParseError: On transport, HTTP or response-shape errors
        """
        ...


def mime_type_for(file_name: str) -> str:
    """Guess the upload MIME type from the file extension."""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return MIME_TYPES.get(extension, "application/octet-stream")


def transform_response(data: dict[str, Any]) -> ParsedDocument:
    """Map an Upstage response onto :class:`ParsedDocument`.

    Response structure: {content: {pages: [{text}], tables: [{page, data}]}}

    Raises:
        DocumentParseError: If the payload does not have that shape
    """
    if not isinstance(data, dict):
        raise DocumentParseError("Failed to transform API response")

    content = data.get("content") or {}
    if not isinstance(content, dict):
        raise DocumentParseError("Failed to transform API response")

    try:
        return _build_document(content)
    except ValidationError as e:
        raise DocumentParseError("Failed to transform API response") from e


def _build_document(content: dict[str, Any]) -> ParsedDocument:
    pages: list[ParsedPage] = []
    raw_pages = content.get("pages")
    if isinstance(raw_pages, list):
        for index, page in enumerate(raw_pages, start=1):
            text = page.get("text") if isinstance(page, dict) else None
            pages.append(ParsedPage(page=index, text=text or ""))

    tables: list[ParsedTable] = []
    raw_tables = content.get("tables")
    if isinstance(raw_tables, list):
        for table in raw_tables:
            if not isinstance(table, dict):
                continue
            table_data = table.get("data") or table
            shape = table_data if isinstance(table_data, dict) else {}
            tables.append(
                ParsedTable(
                    page=table.get("page") or 0,
                    rows=shape.get("rows") or 0,
                    cols=shape.get("cols") or 0,
                    data=table_data,
                )
            )

    full_text = "".join(f"{page.text}\n" for page in pages).strip()
    return ParsedDocument(full_text=full_text, pages=pages, tables=tables)


class UpstageDocumentParser:
    """Multipart upload to the Upstage document-parse endpoint with bearer auth."""

    def __init__(
        self,
        api_key: str,
        url: str = "https://api.upstage.ai/v1/document-ai/document-parse",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize parser.

        Args:
            api_key: Upstage API key
            url: Document parse endpoint
            client: Optional httpx client (for testing with mocks)
            timeout: Request timeout in seconds
        """
        self._api_key = api_key
        self._url = url
        self._client = client
        self._timeout = timeout

    async def parse(self, content: bytes, file_name: str) -> ParsedDocument:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True

        try:
            response = await client.post(
                self._url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                files={"document": (file_name, content, mime_type_for(file_name))},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Upstage API error",
                extra={"structured": {"status": e.response.status_code, "file_name": file_name}},
            )
            raise DocumentParseError(
                f"Upstage API error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "Upstage request failed",
                extra={"structured": {"error": str(e), "file_name": file_name}},
            )
            raise DocumentParseError(f"Upstage request failed: {e}") from e
        except ValueError as e:
            raise DocumentParseError("Upstage returned invalid JSON") from e
        finally:
            if close_client:
                await client.aclose()

        return transform_response(data)


def create_document_parser(settings: Settings) -> UpstageDocumentParser | None:
    """Build the parser, or None when no API key is configured."""
    if not settings.upstage_api_key:
        logger.warning("UPSTAGE_API_KEY not configured. Document indexing disabled.")
        return None

    return UpstageDocumentParser(
        settings.upstage_api_key,
        settings.upstage_api_url,
        timeout=settings.outbound_timeout_sec,
    )
