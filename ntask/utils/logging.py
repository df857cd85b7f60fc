"""Structured logging for outbound deliveries (webhooks, email)."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application start."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class StructuredDeliveryLogger:
    """Structured logger for best-effort outbound deliveries."""

    def log_delivery(
        self,
        channel: str,
        target: str,
        outcome: str,
        latency_ms: float | None = None,
        error_reason: str | None = None,
        **fields: Any,
    ) -> None:
        """Log a delivery attempt with structured data.

        Args:
            channel: "webhook" or "email"
            target: Event name or email template
            outcome: "success", "failed", "skipped" or "disabled"
            latency_ms: Round-trip time, when measured
            error_reason: Failure description
            **fields: Extra context (recipient, url, ...)
        """
        log_data: dict[str, Any] = {
            "channel": channel,
            "target": target,
            "outcome": outcome,
            **fields,
        }

        if latency_ms is not None:
            log_data["latency_ms"] = round(latency_ms, 2)
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"{channel} delivery: {target} - {outcome}"

        if outcome == "failed":
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})
