"""Outbound webhook event models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ntask.models.board import TaskStatus
from ntask.models.common import CamelModel, utcnow


class WebhookEventType(str, Enum):
    """Events announced to the external automation system."""

    task_completed = "task_completed"
    request_created = "request_created"
    request_approved = "request_approved"
    request_rejected = "request_rejected"
    document_indexed = "document_indexed"


class WebhookEvent(BaseModel):
    """Envelope POSTed to the configured URL for ``event``."""

    event: WebhookEventType
    timestamp: datetime = Field(default_factory=utcnow)
    data: dict[str, Any] = Field(default_factory=dict)


class LogEntry(CamelModel):
    """Work log entry as carried in the completion payload."""

    id: str
    text: str
    author: str | None = None
    created_at: datetime


class TaskCompletedPayload(CamelModel):
    """Snapshot of a task at the moment it was marked DONE."""

    task_id: str
    title: str
    description: str
    status: TaskStatus
    assignee: str | None = None
    actor: str | None = None
    finished_at: datetime
    logs: list[LogEntry] = Field(default_factory=list)
    sub_task_ids: list[str] = Field(default_factory=list)
    related_task_ids: list[str] = Field(default_factory=list)
    app: str = "N-TASK"

    def to_event(self) -> WebhookEvent:
        """Wrap in the standard webhook envelope."""
        return WebhookEvent(
            event=WebhookEventType.task_completed,
            timestamp=self.finished_at,
            data=self.model_dump(mode="json", by_alias=True),
        )
