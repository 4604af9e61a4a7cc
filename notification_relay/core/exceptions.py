"""Custom exception classes for the notification relay."""

from __future__ import annotations

from typing import Any


class RelayException(Exception):
    """Base relay exception.

    All custom exceptions should inherit from this class.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier (stable, machine readable).
        extra: Additional context-specific information about the error.

    Example:
            raise RelayException(
            detail="Something went wrong",
            type="relay-error",
            extra={"queue": "process_notification"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "relay-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize relay exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.type = type
        self.extra = extra or {}
        super().__init__(detail)


class ConfigurationException(RelayException):
    """Raised when required configuration is missing or invalid.

    Fatal at startup: the process exits non-zero before consuming.

    Example:
            raise ConfigurationException(
            detail="Missing required settings: RABBITMQ",
            extra={"missing": ["RABBITMQ"]}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "configuration-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class ValidationException(RelayException):
    """Raised when a notification task has an invalid shape.

    Inside the queue pipeline this is recovered by the retry/dead-letter
    policy; at a direct call site it propagates to the caller.

    Example:
            raise ValidationException(
            detail="Notification title is required",
            extra={"field": "notification.title"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class MessageParseException(ValidationException):
    """Raised when a message body is not valid UTF-8 JSON."""

    def __init__(
        self,
        detail: str,
        type: str = "message-parse-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class CallbackException(RelayException):
    """Raised when a delivery callback endpoint rejects the status update."""

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        type: str = "callback-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(detail=detail, type=type, extra=extra)


__all__ = [
    "CallbackException",
    "ConfigurationException",
    "MessageParseException",
    "RelayException",
    "ValidationException",
]
