"""Per-message notification handling used by the consumption loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from notification_relay.features.notifications.schemas import classify_task

if TYPE_CHECKING:
    from collections.abc import Mapping

    from notification_relay.features.notifications.callbacks import DeliveryCallbackClient
    from notification_relay.features.notifications.dispatcher import NotificationDispatcher
    from notification_relay.features.notifications.schemas import DeliveryResult

logger = logging.getLogger(__name__)


class NotificationService:
    """Dispatch a task, then report delivery to its callback.

    Every exception raised here (validation, callback) is a processing
    failure for the consumption loop, which retries or dead-letters.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        callbacks: DeliveryCallbackClient | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._callbacks = callbacks

    async def process(self, task: Mapping[str, Any]) -> DeliveryResult:
        classified = classify_task(task)
        result = await self._dispatcher.dispatch(classified)

        logger.info(
            "Notification processed",
            extra={
                "notification_type": classified.type,
                "title": classified.notification.title,
                "result": result.to_wire(),
            },
        )

        if result.success and self._callbacks is not None:
            await self._callbacks.notify(classified)
        return result
