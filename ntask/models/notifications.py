"""In-app notification models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ntask.models.common import utcnow
from ntask.models.documents import DocumentRequest


class NotificationType(str, Enum):
    """Notification variant."""

    task = "task"
    document_request = "document_request"


class Notification(BaseModel):
    """Notification addressed to a user (the assignee name, not a real identity)."""

    id: str
    user_id: str
    task_id: str | None = None
    message: str
    type: NotificationType = NotificationType.task
    # Denormalized copy taken when the notification was created
    document_request: DocumentRequest | None = None
    created_at: datetime = Field(default_factory=utcnow)
