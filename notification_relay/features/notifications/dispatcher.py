"""Routes classified notification tasks to the push client."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from notification_relay.features.notifications.schemas import (
    BulkDeliveryResult,
    BulkNotificationTask,
    SingleDeliveryResult,
    SingleNotificationTask,
    classify_task,
    convert_to_string_values,
    token_preview,
)
from notification_relay.infra.metrics.prometheus import (
    notification_deliveries_total,
    notification_dispatch_duration_seconds,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from notification_relay.core.settings import FirebaseSettings
    from notification_relay.features.notifications.schemas import DeliveryResult

logger = logging.getLogger(__name__)


class PushClient(Protocol):
    """What the dispatcher needs from a push provider client."""

    async def send(
        self,
        token: str,
        notification: Mapping[str, Any],
        data: Mapping[str, str] | None = None,
    ) -> SingleDeliveryResult: ...


class NotificationDispatcher:
    """Validate a task, pick single or bulk delivery and aggregate results.

    Validation failures raise ``ValidationException`` before any network
    call. Delivery failures come back from the push client as result values
    and are passed through, never raised.
    """

    def __init__(
        self,
        push_client: PushClient,
        batch_size: int = 500,
        concurrency: int = 10,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._push_client = push_client
        self._batch_size = batch_size
        self._concurrency = concurrency

    @classmethod
    def from_settings(cls, push_client: PushClient, settings: FirebaseSettings) -> NotificationDispatcher:
        return cls(
            push_client,
            batch_size=settings.bulk_batch_size,
            concurrency=settings.bulk_concurrency,
        )

    async def dispatch(
        self,
        task: Mapping[str, Any] | SingleNotificationTask | BulkNotificationTask,
    ) -> DeliveryResult:
        """Deliver ``task`` and return its delivery result.

        Raises:
            ValidationException: If the task is malformed.
        """
        classified = classify_task(task)
        notification = classified.notification.model_dump(exclude_none=True)
        data = convert_to_string_values(classified.data) or None

        started = time.perf_counter()
        try:
            if isinstance(classified, BulkNotificationTask):
                return await self._send_bulk(classified.to, notification, data)
            return await self._send_single(classified.to, notification, data)
        finally:
            notification_dispatch_duration_seconds.labels(type=classified.type).observe(
                time.perf_counter() - started
            )

    async def _send_single(
        self,
        token: str,
        notification: dict[str, Any],
        data: dict[str, str] | None,
    ) -> SingleDeliveryResult:
        logger.info(
            "Processing single notification",
            extra={"token": token_preview(token), "title": notification.get("title")},
        )
        result = await self._push_client.send(token, notification, data)
        notification_deliveries_total.labels(
            type="single", status="success" if result.success else "failure"
        ).inc()
        if not result.success:
            logger.warning(
                "Single notification not delivered",
                extra={"token": token_preview(token), "error": result.error},
            )
        return result

    async def _send_bulk(
        self,
        tokens: Sequence[str],
        notification: dict[str, Any],
        data: dict[str, str] | None,
    ) -> BulkDeliveryResult:
        logger.info(
            "Processing bulk notification",
            extra={"token_count": len(tokens), "title": notification.get("title")},
        )
        semaphore = asyncio.Semaphore(self._concurrency)

        async def send_one(token: str) -> bool:
            async with semaphore:
                try:
                    result = await self._push_client.send(token, notification, data)
                except Exception:
                    # A raising send counts as one failure
                    logger.exception("Bulk send raised", extra={"token": token_preview(token)})
                    return False
            return result.success

        success_count = 0
        failure_count = 0
        for start in range(0, len(tokens), self._batch_size):
            batch = tokens[start : start + self._batch_size]
            outcomes = await asyncio.gather(*(send_one(token) for token in batch))
            batch_success = sum(1 for ok in outcomes if ok)
            success_count += batch_success
            failure_count += len(outcomes) - batch_success

        if success_count:
            notification_deliveries_total.labels(type="bulk", status="success").inc(success_count)
        if failure_count:
            notification_deliveries_total.labels(type="bulk", status="failure").inc(failure_count)

        logger.info(
            "Bulk notification complete",
            extra={"success_count": success_count, "failure_count": failure_count},
        )
        return BulkDeliveryResult(
            success=True,
            success_count=success_count,
            failure_count=failure_count,
        )
