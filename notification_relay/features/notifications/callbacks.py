"""Delivery status callbacks.

A task may carry ``data.callback = {"href": ..., "method": ...}``; once the
notification has been dispatched the relay reports ``delivered`` to that URL.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from notification_relay.core.exceptions import CallbackException
from notification_relay.infra.metrics.prometheus import delivery_callbacks_total

if TYPE_CHECKING:
    from notification_relay.features.notifications.schemas import (
        BulkNotificationTask,
        SingleNotificationTask,
    )

logger = logging.getLogger(__name__)


def build_callback_body(correlation_id: Any, now: datetime | None = None) -> dict[str, Any]:
    """JSON body reported to the callback endpoint."""
    timestamp = (now or datetime.now(UTC)).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {
        "status": "delivered",
        "notificationId": correlation_id,
        "timestamp": timestamp,
    }


class DeliveryCallbackClient:
    """Reports delivery status over HTTP with httpx.

    Args:
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    async def notify(self, task: SingleNotificationTask | BulkNotificationTask) -> bool:
        """Call the task's callback, if it has one.

        Returns:
            True if a callback was sent, False if the task carries none.

        Raises:
            CallbackException: On a non-2xx response or transport failure.
        """
        callback = task.callback
        if callback is None:
            logger.debug("No callback defined for this notification")
            return False

        href = str(callback["href"])
        method = str(callback.get("method") or "POST").upper()
        body = build_callback_body(task.correlation_id)

        logger.info("Calling delivery callback", extra={"callback_href": href, "callback_method": method})
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(method, href, json=body)
        except httpx.HTTPError as exc:
            delivery_callbacks_total.labels(status="error").inc()
            raise CallbackException(
                f"Error calling callback: {exc}",
                extra={"href": href, "method": method},
            ) from exc

        if not response.is_success:
            delivery_callbacks_total.labels(status="rejected").inc()
            raise CallbackException(
                f"Error calling callback: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                extra={"href": href, "method": method},
            )

        delivery_callbacks_total.labels(status="delivered").inc()
        logger.info("Callback processed", extra={"callback_href": href, "status_code": response.status_code})
        return True
