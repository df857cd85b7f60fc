"""Task board domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ntask.models.common import utcnow


class TaskStatus(str, Enum):
    """Task status. Any status may move to any other."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TaskRelationType(str, Enum):
    """Directed relation kind between two tasks."""

    SUBTASK = "SUBTASK"
    RELATED = "RELATED"
    CROSS_DEPT = "CROSS_DEPT"
    CROSS_BOARD = "CROSS_BOARD"


class Board(BaseModel):
    """Named workspace grouping a set of tasks."""

    id: str
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Task(BaseModel):
    """Unit of work on a board."""

    id: str  # e.g. SCRUM-2
    board_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    assignee: str | None = None
    is_important: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TaskRelation(BaseModel):
    """Directed, typed edge between two tasks."""

    id: str
    from_task_id: str
    to_task_id: str
    type: TaskRelationType
    # Only set when the two tasks live on different boards
    from_board_id: str | None = None
    to_board_id: str | None = None


class TaskLog(BaseModel):
    """Append-only work log entry."""

    id: str
    task_id: str
    text: str
    author: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class NodePosition(BaseModel):
    """Manual (dragged) position override for a graph node."""

    x: float
    y: float
