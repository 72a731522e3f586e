"""Fire-and-forget error reporting for operator visibility."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class MonitoringReporter:
    """Log every report and, when configured, post it to a webhook.

    Delivery never raises and is bounded by `timeout_sec`.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        *,
        timeout_sec: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.timeout_sec = timeout_sec
        self._transport = transport

    def report_error(
        self, error: BaseException | str, context: Optional[dict[str, Any]] = None
    ) -> None:
        message = str(error) if isinstance(error, BaseException) else error
        logger.error("[MONITORING_ALERT] %s context=%s", message, context or {})
        self._deliver(
            {
                "level": "error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": message,
                "error_type": type(error).__name__
                if isinstance(error, BaseException)
                else None,
                "context": context or {},
            }
        )

    def report_warning(
        self, message: str, context: Optional[dict[str, Any]] = None
    ) -> None:
        logger.warning("[MONITORING_WARNING] %s context=%s", message, context or {})
        self._deliver(
            {
                "level": "warning",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "message": message,
                "context": context or {},
            }
        )

    def _deliver(self, payload: dict[str, Any]) -> None:
        if not self.webhook_url:
            return
        try:
            with httpx.Client(
                timeout=self.timeout_sec, transport=self._transport
            ) as client:
                response = client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            logger.debug("Monitoring delivery failed: %s", exc)
