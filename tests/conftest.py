"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from ntask.db.inmemory import InMemoryDocumentRepository, InMemoryDocumentRequestRepository
from ntask.db.models import Base
from ntask.graph.service import TaskService
from ntask.graph.store import BoardStore, MemoryStorage
from ntask.models.documents import AccessLevel
from ntask.workflow.requests import DocumentRequestWorkflow
from tests.fakes import FIXED_NOW, RecordingEmailSender, RecordingNotifier


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def board_store() -> BoardStore:
    return BoardStore(MemoryStorage())


@pytest.fixture
def task_service(board_store: BoardStore, notifier: RecordingNotifier) -> TaskService:
    return TaskService(board_store, notifier, clock=lambda: FIXED_NOW)


@pytest.fixture
def document_repo() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def request_repo() -> InMemoryDocumentRequestRepository:
    return InMemoryDocumentRequestRepository()


@pytest_asyncio.fixture
async def seeded_documents(
    document_repo: InMemoryDocumentRepository,
) -> InMemoryDocumentRepository:
    """Two project-plan documents and one restricted HR document."""
    await document_repo.create_document(
        document_id="doc-1",
        file_name="Q3 Project Plan.pdf",
        file_path="/shared/plans/q3-project-plan.pdf",
        parsed_text="Project plan for the Q3 launch: milestones, owners and risks.",
        parsed_metadata={"pages": 3, "tables": []},
    )
    await document_repo.create_document(
        document_id="doc-2",
        file_name="Project Plan Template.docx",
        file_path="/shared/templates/project-plan.docx",
        parsed_text="Template: how to write a project plan.",
        parsed_metadata={"pages": 1, "tables": []},
    )
    await document_repo.create_document(
        document_id="doc-3",
        file_name="Salary Bands.xlsx",
        file_path="/hr/salary-bands.xlsx",
        parsed_text="Salary bands per level.",
        parsed_metadata={"pages": 1, "tables": []},
        access_level=AccessLevel.restricted,
        allowed_departments=["HR"],
    )
    return document_repo


@pytest.fixture
def workflow(
    seeded_documents: InMemoryDocumentRepository,
    request_repo: InMemoryDocumentRequestRepository,
    email_sender: RecordingEmailSender,
    notifier: RecordingNotifier,
    task_service: TaskService,
) -> DocumentRequestWorkflow:
    return DocumentRequestWorkflow(
        seeded_documents,
        request_repo,
        email_sender,
        notifier,
        base_url="http://testserver",
        inbox=task_service,
    )


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ntask.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires POSTGRES_TEST_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("POSTGRES_TEST_URL")
    if not database_url:
        pytest.skip("POSTGRES_TEST_URL not set - skipping postgres test")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
