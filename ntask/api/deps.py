"""FastAPI dependencies wiring repositories, adapters and services.

Without DATABASE_URL the document repositories are process-wide in-memory
singletons; otherwise each request gets its own async session.
"""

from functools import lru_cache
from typing import Annotated, NamedTuple

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ntask.adapters.email import EmailSender, create_email_sender
from ntask.adapters.upstage import DocumentParser, create_document_parser
from ntask.adapters.webhook import WebhookNotifier, create_webhook_notifier
from ntask.config import get_settings
from ntask.db.engine import get_session
from ntask.db.inmemory import InMemoryDocumentRepository, InMemoryDocumentRequestRepository
from ntask.db.repositories import DocumentRepository, DocumentRequestRepository
from ntask.db.sql_repositories import SqlDocumentRepository, SqlDocumentRequestRepository
from ntask.graph.service import TaskService
from ntask.graph.store import BoardStore, JsonFileStorage, MemoryStorage, SnapshotStorage
from ntask.workflow.indexing import DocumentIndexer
from ntask.workflow.requests import DocumentRequestWorkflow


class Repositories(NamedTuple):
    documents: DocumentRepository
    requests: DocumentRequestRepository


@lru_cache
def _memory_repositories() -> Repositories:
    return Repositories(InMemoryDocumentRepository(), InMemoryDocumentRequestRepository())


def get_repositories(
    session: Annotated[AsyncSession | None, Depends(get_session)],
) -> Repositories:
    """Document repositories for one request."""
    if session is None:
        return _memory_repositories()
    return Repositories(SqlDocumentRepository(session), SqlDocumentRequestRepository(session))


@lru_cache
def get_webhook_notifier() -> WebhookNotifier:
    return create_webhook_notifier(get_settings())


@lru_cache
def get_email_sender() -> EmailSender | None:
    return create_email_sender(get_settings())


@lru_cache
def get_document_parser() -> DocumentParser | None:
    return create_document_parser(get_settings())


@lru_cache
def get_board_store() -> BoardStore:
    settings = get_settings()
    storage: SnapshotStorage = (
        JsonFileStorage(settings.board_store_path)
        if settings.board_store_path
        else MemoryStorage()
    )
    return BoardStore(storage)


@lru_cache
def get_task_service() -> TaskService:
    return TaskService(
        get_board_store(), get_webhook_notifier(), app_name=get_settings().app_name
    )


def get_request_workflow(
    repos: Annotated[Repositories, Depends(get_repositories)],
    email_sender: Annotated[EmailSender | None, Depends(get_email_sender)],
    notifier: Annotated[WebhookNotifier, Depends(get_webhook_notifier)],
    tasks: Annotated[TaskService, Depends(get_task_service)],
) -> DocumentRequestWorkflow:
    settings = get_settings()
    return DocumentRequestWorkflow(
        repos.documents,
        repos.requests,
        email_sender,
        notifier,
        base_url=settings.base_url,
        search_limit=settings.search_limit,
        inbox=tasks,
    )


def get_document_indexer(
    repos: Annotated[Repositories, Depends(get_repositories)],
    parser: Annotated[DocumentParser | None, Depends(get_document_parser)],
    notifier: Annotated[WebhookNotifier, Depends(get_webhook_notifier)],
) -> DocumentIndexer:
    return DocumentIndexer(repos.documents, parser, notifier)
