"""Notification tasks: classification, dispatch and delivery callbacks."""

from notification_relay.features.notifications.schemas import (
    BulkDeliveryResult,
    BulkNotificationTask,
    DeliveryResult,
    Notification,
    NotificationTask,
    SingleDeliveryResult,
    SingleNotificationTask,
    classify_task,
    convert_to_string_values,
    unwrap_envelope,
)

__all__ = [
    "BulkDeliveryResult",
    "BulkNotificationTask",
    "DeliveryResult",
    "Notification",
    "NotificationTask",
    "SingleDeliveryResult",
    "SingleNotificationTask",
    "classify_task",
    "convert_to_string_values",
    "unwrap_envelope",
]
