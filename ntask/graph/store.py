"""Task board state store with write-all-or-nothing snapshot persistence."""

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ntask.errors import PersistenceError
from ntask.models.board import (
    Board,
    NodePosition,
    Task,
    TaskLog,
    TaskRelation,
    TaskRelationType,
    TaskStatus,
)
from ntask.models.notifications import Notification

logger = logging.getLogger(__name__)

DEFAULT_BOARD_ID = "board-1"


class BoardSnapshot(BaseModel):
    """Everything the board persists, written as one unit."""

    boards: list[Board] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    relations: list[TaskRelation] = Field(default_factory=list)
    # task_id -> logs, newest first
    logs: dict[str, list[TaskLog]] = Field(default_factory=dict)
    notifications: list[Notification] = Field(default_factory=list)
    positions: dict[str, NodePosition] = Field(default_factory=dict)
    active_board_id: str | None = None

    def task(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def board(self, board_id: str) -> Board | None:
        return next((b for b in self.boards if b.id == board_id), None)


def default_snapshot() -> BoardSnapshot:
    """Built-in starting data used when nothing valid is stored."""
    return BoardSnapshot(
        boards=[
            Board(id=DEFAULT_BOARD_ID, name="Main Board", description="Default workspace"),
        ],
        tasks=[
            Task(
                id="SCRUM-2",
                board_id=DEFAULT_BOARD_ID,
                title="Task 2 (main work item)",
                description="Design the backend API and implement the base endpoints",
                status=TaskStatus.IN_PROGRESS,
                assignee="Dohyun",
            ),
            Task(
                id="SCRUM-5",
                board_id=DEFAULT_BOARD_ID,
                title="Prototype the task service",
                description="First draft of the task management service",
                status=TaskStatus.TODO,
                assignee="Gildong",
            ),
        ],
        relations=[
            TaskRelation(
                id="rel-2-5",
                from_task_id="SCRUM-2",
                to_task_id="SCRUM-5",
                type=TaskRelationType.SUBTASK,
            ),
        ],
        active_board_id=DEFAULT_BOARD_ID,
    )


class SnapshotStorage(Protocol):
    """Backing storage for board snapshots."""

    def load(self) -> dict[str, Any] | None:
        """Return the raw stored snapshot, or None if nothing is stored.

        Raises:
            ValueError: If stored data cannot be decoded
        """
        ...

    def save(self, data: dict[str, Any]) -> None:
        """Replace the stored snapshot.

        Raises:
            OSError: If the write fails; the previous snapshot must survive
        """
        ...


class MemoryStorage:
    """Snapshot storage that lives only as long as the process."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data

    def load(self) -> dict[str, Any] | None:
        return self._data

    def save(self, data: dict[str, Any]) -> None:
        self._data = data


class JsonFileStorage:
    """Snapshot storage in a single JSON file, replaced atomically."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        with self._path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("board snapshot must be a JSON object")
        return data

    def save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class BoardStore:
    """In-memory board state with a single mutation entry point.

    Every change goes through :meth:`transaction`: the caller edits a deep
    copy, the copy is persisted, and only then does it become the live state.
    A failed write leaves both storage and memory untouched.
    """

    def __init__(self, storage: SnapshotStorage) -> None:
        self._storage = storage
        self._state = self._load()

    def _load(self) -> BoardSnapshot:
        try:
            raw = self._storage.load()
        except (OSError, ValueError) as e:
            logger.warning("Board snapshot unreadable, using defaults: %s", e)
            return default_snapshot()

        if raw is None:
            return default_snapshot()

        try:
            return BoardSnapshot.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(
                "Board snapshot invalid, using defaults",
                extra={"structured": {"errors": e.error_count()}},
            )
            return default_snapshot()

    @property
    def storage(self) -> SnapshotStorage:
        return self._storage

    @property
    def state(self) -> BoardSnapshot:
        """Read-only view of the committed state. Do not mutate."""
        return self._state

    @contextmanager
    def transaction(self) -> Iterator[BoardSnapshot]:
        """Yield a draft of the state; commit it when the block exits cleanly.

        Raises:
            PersistenceError: If the draft could not be written
        """
        draft = self._state.model_copy(deep=True)
        yield draft

        try:
            self._storage.save(draft.model_dump(mode="json"))
        except OSError as e:
            logger.error("Failed to persist board snapshot: %s", e)
            raise PersistenceError("Failed to persist board state") from e

        self._state = draft
