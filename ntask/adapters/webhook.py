"""Outbound webhook notifier for the external automation system (n8n)."""

import time
from collections.abc import Mapping
from typing import Protocol

import httpx

from ntask.config import Settings
from ntask.models.webhooks import WebhookEvent, WebhookEventType
from ntask.utils.logging import StructuredDeliveryLogger
from ntask.utils.metrics import PrometheusDeliveryMetrics


class WebhookNotifier(Protocol):
    """Fire-and-forget event sink. Implementations never raise."""

    async def notify(self, event: WebhookEvent) -> None:
        """Deliver ``event`` on a best-effort, at-most-once basis."""
        ...


class HttpWebhookNotifier:
    """POSTs each event as JSON to the URL configured for its type.

    Events without a URL are logged instead of sent. Transport errors and
    non-2xx responses are logged and counted, never raised.
    """

    def __init__(
        self,
        urls: Mapping[WebhookEventType, str],
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize notifier.

        Args:
            urls: Target URL per event type; missing or empty means "not configured"
            timeout: Per-request timeout in seconds
            client: Optional httpx client (for testing with mocks)
        """
        self._urls = {event: url for event, url in urls.items() if url}
        self._timeout = timeout
        self._client = client
        self._delivery_log = StructuredDeliveryLogger()
        self._metrics = PrometheusDeliveryMetrics()

    async def notify(self, event: WebhookEvent) -> None:
        event_name = event.event.value
        body = event.model_dump(mode="json")

        url = self._urls.get(event.event)
        if url is None:
            self._delivery_log.log_delivery("webhook", event_name, "skipped", payload=body)
            self._metrics.record_webhook(event_name, "skipped")
            return

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True

        started = time.perf_counter()
        try:
            response = await client.post(url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            latency_ms = (time.perf_counter() - started) * 1000
            self._delivery_log.log_delivery(
                "webhook",
                event_name,
                "failed",
                latency_ms=latency_ms,
                error_reason=f"{type(e).__name__}: {e}",
                url=url,
            )
            self._metrics.record_webhook(event_name, "failed", latency_ms)
            return
        finally:
            if close_client:
                await client.aclose()

        latency_ms = (time.perf_counter() - started) * 1000
        self._delivery_log.log_delivery(
            "webhook", event_name, "success", latency_ms=latency_ms, url=url
        )
        self._metrics.record_webhook(event_name, "success", latency_ms)


def webhook_urls_from_settings(settings: Settings) -> dict[WebhookEventType, str]:
    """Collect the configured webhook URL for every event type."""
    configured = {
        WebhookEventType.task_completed: settings.webhook_task_completed_url,
        WebhookEventType.request_created: settings.webhook_request_created_url,
        WebhookEventType.request_approved: settings.webhook_request_approved_url,
        WebhookEventType.request_rejected: settings.webhook_request_rejected_url,
        WebhookEventType.document_indexed: settings.webhook_document_indexed_url,
    }
    return {event: url for event, url in configured.items() if url}


def create_webhook_notifier(settings: Settings) -> HttpWebhookNotifier:
    """Build the notifier from application settings."""
    return HttpWebhookNotifier(
        webhook_urls_from_settings(settings), timeout=settings.outbound_timeout_sec
    )
