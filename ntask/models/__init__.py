"""Models package - re-exports for convenience."""

from ntask.models.board import (
    Board,
    NodePosition,
    Task,
    TaskLog,
    TaskRelation,
    TaskRelationType,
    TaskStatus,
)
from ntask.models.documents import (
    AccessLevel,
    ApprovalAction,
    Document,
    DocumentRequest,
    DocumentSearchResult,
    ParsedDocument,
    ParsedPage,
    ParsedTable,
    RequestStatus,
    Urgency,
)
from ntask.models.notifications import Notification, NotificationType
from ntask.models.webhooks import LogEntry, TaskCompletedPayload, WebhookEvent, WebhookEventType

__all__ = [
    # Board
    "Board",
    "NodePosition",
    "Task",
    "TaskLog",
    "TaskRelation",
    "TaskRelationType",
    "TaskStatus",
    # Documents
    "AccessLevel",
    "ApprovalAction",
    "Document",
    "DocumentRequest",
    "DocumentSearchResult",
    "ParsedDocument",
    "ParsedPage",
    "ParsedTable",
    "RequestStatus",
    "Urgency",
    # Notifications
    "Notification",
    "NotificationType",
    # Webhooks
    "LogEntry",
    "TaskCompletedPayload",
    "WebhookEvent",
    "WebhookEventType",
]
