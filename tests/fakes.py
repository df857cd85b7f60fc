"""Recording fakes for the outbound side-effect protocols."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ntask.graph.store import MemoryStorage
from ntask.models.webhooks import WebhookEvent, WebhookEventType

FIXED_NOW = datetime(2025, 11, 20, 9, 30, tzinfo=timezone.utc)


class RecordingNotifier:
    """WebhookNotifier that keeps every event it is given."""

    def __init__(self) -> None:
        self.events: list[WebhookEvent] = []

    async def notify(self, event: WebhookEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: WebhookEventType) -> list[WebhookEvent]:
        return [e for e in self.events if e.event == event_type]


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str
    template: str


class RecordingEmailSender:
    """EmailSender that records messages instead of talking SMTP."""

    def __init__(self, succeed: bool = True) -> None:
        self.sent: list[SentEmail] = []
        self._succeed = succeed

    async def send(self, to: str, subject: str, html: str, *, template: str) -> bool:
        self.sent.append(SentEmail(to, subject, html, template))
        return self._succeed

    def to(self, address: str) -> list[SentEmail]:
        return [m for m in self.sent if m.to == address]


class FailingStorage(MemoryStorage):
    """Snapshot storage whose writes always fail."""

    def save(self, data: dict[str, Any]) -> None:
        raise OSError("disk full")
