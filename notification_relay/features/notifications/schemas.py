"""Pydantic schemas for notification tasks and delivery results."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from notification_relay.core.exceptions import ValidationException

NOTIFICATION_REQUESTED = "NotificationRequested"

# Envelope fields preserved under ``metadata`` when unwrapping
ENVELOPE_METADATA_FIELDS = ("eventType", "version", "producer", "correlationId", "timestamp")


# ============================================================================
# Task Schemas
# ============================================================================


class Notification(BaseModel):
    """Visible part of a push notification."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = Field(..., min_length=1, description="Notification title")
    body: str | None = Field(default=None, description="Notification body text")


class NotificationTaskBase(BaseModel):
    """Fields shared by single and bulk tasks."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    notification: Notification
    data: dict[str, Any] | None = Field(
        default=None,
        description="Arbitrary key-value payload forwarded to the device as strings",
    )
    user_id: Any = Field(default=None, alias="userId")
    timestamp: Any = None
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Event envelope fields (eventType, version, producer, correlationId)",
    )

    @property
    def callback(self) -> dict[str, Any] | None:
        """``data.callback`` when it carries an ``href``."""
        callback = (self.data or {}).get("callback")
        if isinstance(callback, Mapping) and callback.get("href"):
            return dict(callback)
        return None

    @property
    def correlation_id(self) -> Any:
        """Correlation id from ``data.payload``, falling back to envelope metadata."""
        payload = (self.data or {}).get("payload")
        if isinstance(payload, Mapping) and payload.get("correlationId") is not None:
            return payload["correlationId"]
        return (self.metadata or {}).get("correlationId")


class SingleNotificationTask(NotificationTaskBase):
    """Notification addressed to one device token."""

    type: Literal["single"] = "single"
    to: str


class BulkNotificationTask(NotificationTaskBase):
    """Notification fanned out to an ordered list of device tokens."""

    type: Literal["bulk"] = "bulk"
    to: list[str]


NotificationTask = Annotated[
    SingleNotificationTask | BulkNotificationTask,
    Field(discriminator="type"),
]


# ============================================================================
# Result Schemas
# ============================================================================


class SingleDeliveryResult(BaseModel):
    """Outcome of one provider send. Failures are values, never exceptions."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    message_id: str | None = Field(default=None, alias="messageId")
    error: str | None = None
    code: str | None = Field(default=None, description="Provider error code, if any")

    @classmethod
    def failure(cls, error: str, code: str | None = None) -> SingleDeliveryResult:
        return cls(success=False, error=error, code=code)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BulkDeliveryResult(BaseModel):
    """Aggregated outcome of a bulk send.

    ``success`` reports that aggregation completed, so it stays True even
    when every individual send failed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool = True
    success_count: int = Field(default=0, ge=0, alias="successCount")
    failure_count: int = Field(default=0, ge=0, alias="failureCount")

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


DeliveryResult = SingleDeliveryResult | BulkDeliveryResult


# ============================================================================
# Helpers
# ============================================================================


def _is_token_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def convert_to_string_values(data: Mapping[str, Any] | None) -> dict[str, str]:
    """Convert every value to a string, as FCM data payloads require.

    Mappings and sequences become compact JSON, strings pass through and
    other primitives use their JSON spelling (``True`` -> ``"true"``,
    ``None`` -> ``"null"``).

    >>> convert_to_string_values({"a": 1, "b": {"c": 2}, "d": "x"})
    {'a': '1', 'b': '{"c":2}', 'd': 'x'}
    """
    if not data:
        return {}

    result: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[str(key)] = value
        elif isinstance(value, (Mapping, list, tuple)):
            result[str(key)] = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
        elif value is None or isinstance(value, (bool, int, float)):
            result[str(key)] = json.dumps(value)
        else:
            result[str(key)] = str(value)
    return result


def unwrap_envelope(body: Any) -> Any:
    """Flatten a ``NotificationRequested`` event into a plain task.

    Anything that is not such an envelope is returned unchanged.
    """
    if not isinstance(body, Mapping):
        return body
    inner = body.get("data")
    if body.get("eventType") != NOTIFICATION_REQUESTED or not isinstance(inner, Mapping):
        return body

    task: dict[str, Any] = {
        "to": inner.get("to"),
        "notification": inner.get("notification"),
        "data": inner.get("data"),
        "userId": inner.get("userId"),
        "timestamp": inner.get("timestamp"),
        "metadata": {field: body.get(field) for field in ENVELOPE_METADATA_FIELDS},
    }
    if "type" in inner:
        task["type"] = inner["type"]
    return task


def resolve_type(raw: Mapping[str, Any]) -> Any:
    """Explicit ``type``, then ``data.type``, then sequence-ness of ``to``."""
    explicit = raw.get("type")
    if explicit:
        return explicit

    data = raw.get("data")
    if isinstance(data, Mapping) and data.get("type"):
        return data["type"]

    return "bulk" if _is_token_sequence(raw.get("to")) else "single"


def classify_task(
    raw: Mapping[str, Any] | SingleNotificationTask | BulkNotificationTask,
) -> SingleNotificationTask | BulkNotificationTask:
    """Validate a raw task and resolve it to its single or bulk variant.

    Raises:
        ValidationException: If the task shape is invalid. Raised before any
            network call is made.
    """
    if isinstance(raw, (SingleNotificationTask, BulkNotificationTask)):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationException("Incomplete notification data", extra={"received": type(raw).__name__})

    to = raw.get("to")
    notification = raw.get("notification")
    if to is None or to == "" or not notification:
        raise ValidationException("Incomplete notification data")
    if not isinstance(notification, Mapping):
        raise ValidationException("Incomplete notification data")

    title = notification.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationException("Notification title is required")

    task_type = resolve_type(raw)
    if task_type not in ("single", "bulk"):
        raise ValidationException(f"Unknown notification type: {task_type}", extra={"type": task_type})

    if task_type == "bulk" and not _is_token_sequence(to):
        raise ValidationException(
            'Bulk notifications require an array of tokens: "to" must be an array',
            extra={"type": task_type},
        )
    if task_type == "single" and not isinstance(to, str):
        raise ValidationException("Single notifications require a token string", extra={"type": task_type})

    fields = {**raw, "type": task_type}
    if task_type == "bulk":
        fields["to"] = list(to)

    model = BulkNotificationTask if task_type == "bulk" else SingleNotificationTask
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        raise ValidationException(
            f"Invalid {task_type} notification task",
            extra={"errors": exc.errors(include_url=False, include_input=False)},
        ) from exc


def token_preview(token: str) -> str:
    """First 16 characters of a device token for log output."""
    return f"{token[:16]}..." if len(token) > 16 else token
