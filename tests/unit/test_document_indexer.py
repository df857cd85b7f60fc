"""Unit tests for document indexing."""

import pytest

from ntask.adapters.upstage import DocumentParseError
from ntask.db.inmemory import InMemoryDocumentRepository
from ntask.errors import DownstreamUnavailableError, ValidationError
from ntask.models.documents import AccessLevel, ParsedDocument, ParsedPage, ParsedTable
from ntask.models.webhooks import WebhookEventType
from ntask.workflow.indexing import DocumentIndexer, split_departments
from tests.fakes import RecordingNotifier


class StaticParser:
    """Returns a fixed parse result and remembers what it was given."""

    def __init__(self, parsed: ParsedDocument | None = None, error: str | None = None) -> None:
        self.parsed = parsed or ParsedDocument(
            full_text="Quarterly budget\nTotals",
            pages=[ParsedPage(page=1, text="Quarterly budget"), ParsedPage(page=2, text="Totals")],
            tables=[ParsedTable(page=2, rows=4, cols=3)],
        )
        self.error = error
        self.calls: list[tuple[bytes, str]] = []

    async def parse(self, content: bytes, file_name: str) -> ParsedDocument:
        self.calls.append((content, file_name))
        if self.error:
            raise DocumentParseError(self.error)
        return self.parsed


@pytest.mark.asyncio
async def test_index_document_stores_parsed_text(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    parser = StaticParser()
    indexer = DocumentIndexer(document_repo, parser, notifier)

    result = await indexer.index_document(
        b"xlsx-bytes",
        "Budget.xlsx",
        "/finance/budget.xlsx",
        access_level="department",
        allowed_departments="Finance, HR ,",
    )

    stored = await document_repo.get_document(result.document.id)
    assert stored is not None
    assert stored.parsed_text == "Quarterly budget\nTotals"
    assert stored.access_level == AccessLevel.department
    assert stored.allowed_departments == ["Finance", "HR"]
    assert result.parsed_text_length == len("Quarterly budget\nTotals")
    assert result.metadata["pages"] == 2
    assert result.metadata["tables"][0]["rows"] == 4
    assert parser.calls == [(b"xlsx-bytes", "Budget.xlsx")]

    (event,) = notifier.of_type(WebhookEventType.document_indexed)
    assert event.data["documentId"] == result.document.id
    assert event.data["accessLevel"] == "department"


@pytest.mark.asyncio
async def test_file_name_defaults_to_path_basename(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    indexer = DocumentIndexer(document_repo, StaticParser(), notifier)

    result = await indexer.index_document(b"pdf", None, "/plans/roadmap.pdf")

    assert result.document.file_name == "roadmap.pdf"
    assert result.document.access_level == AccessLevel.public


@pytest.mark.asyncio
async def test_indexed_document_is_searchable(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    indexer = DocumentIndexer(document_repo, StaticParser(), notifier)
    await indexer.index_document(b"xlsx", "Budget.xlsx", "/finance/budget.xlsx")

    results = await document_repo.search_documents("budget")

    assert [r.document.file_name for r in results] == ["Budget.xlsx"]


@pytest.mark.asyncio
@pytest.mark.parametrize(("content", "path"), [(None, "/a.pdf"), (b"pdf", ""), (b"pdf", None)])
async def test_missing_file_or_path(
    document_repo: InMemoryDocumentRepository,
    notifier: RecordingNotifier,
    content: bytes | None,
    path: str | None,
) -> None:
    indexer = DocumentIndexer(document_repo, StaticParser(), notifier)

    with pytest.raises(ValidationError, match="File and filePath are required"):
        await indexer.index_document(content, "a.pdf", path)


@pytest.mark.asyncio
async def test_invalid_access_level(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    indexer = DocumentIndexer(document_repo, StaticParser(), notifier)

    with pytest.raises(ValidationError, match="accessLevel"):
        await indexer.index_document(b"pdf", "a.pdf", "/a.pdf", access_level="secret")


@pytest.mark.asyncio
async def test_no_parser_configured(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    indexer = DocumentIndexer(document_repo, None, notifier)

    with pytest.raises(DownstreamUnavailableError, match="not configured"):
        await indexer.index_document(b"pdf", "a.pdf", "/a.pdf")


@pytest.mark.asyncio
async def test_parse_failure_stores_nothing(
    document_repo: InMemoryDocumentRepository, notifier: RecordingNotifier
) -> None:
    indexer = DocumentIndexer(
        document_repo, StaticParser(error="Upstage API error: 500 - boom"), notifier
    )

    with pytest.raises(DownstreamUnavailableError, match="500"):
        await indexer.index_document(b"pdf", "a.pdf", "/a.pdf")

    assert await document_repo.search_documents("budget") == []
    assert notifier.events == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, []), ("", []), ("HR", ["HR"]), (" HR , Finance,,", ["HR", "Finance"])],
)
def test_split_departments(value: str | None, expected: list[str]) -> None:
    assert split_departments(value) == expected
