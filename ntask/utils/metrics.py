"""Prometheus metrics for outbound side effects and workflow transitions."""

from prometheus_client import Counter, Histogram

# Outbound delivery metrics
webhook_latency_ms = Histogram(
    "webhook_latency_ms",
    "Webhook delivery latency in milliseconds",
    ["event"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, 10000],
)

webhook_deliveries_total = Counter(
    "webhook_deliveries_total",
    "Total webhook delivery attempts",
    ["event", "outcome"],
)

email_sends_total = Counter(
    "email_sends_total",
    "Total email send attempts",
    ["template", "outcome"],
)

# Workflow metrics
document_request_transitions_total = Counter(
    "document_request_transitions_total",
    "Document requests entering a status",
    ["status"],
)


class PrometheusDeliveryMetrics:
    """Prometheus-based delivery metrics implementation."""

    def record_webhook(self, event: str, outcome: str, latency_ms: float | None = None) -> None:
        """Record a webhook delivery attempt."""
        webhook_deliveries_total.labels(event=event, outcome=outcome).inc()
        if latency_ms is not None:
            webhook_latency_ms.labels(event=event).observe(latency_ms)

    def record_email(self, template: str, outcome: str) -> None:
        """Record an email send attempt."""
        email_sends_total.labels(template=template, outcome=outcome).inc()

    def record_transition(self, status: str) -> None:
        """Record a document request entering ``status``."""
        document_request_transitions_total.labels(status=status).inc()
