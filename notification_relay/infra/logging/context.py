"""Context management for structured logging.

Provides automatic context injection into log records using contextvars,
so the delivery tag, retry count and correlation id of the message being
processed end up on every log line without explicit passing.

Each asyncio task gets its own copy of the context, so concurrently
processed messages do not leak fields into each other's records.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current asyncio task.

    Example:
        ```python
        set_log_context(delivery_tag=42, retries=1)
        logger.info("Processing message")  # Includes delivery_tag and retries
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current asyncio task.

    Called between messages so one delivery's fields never appear on the next.
    """
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into LogRecords.

    Attached to the root QueueHandler, so records from every logger pass it:

        ```python
        handler = QueueHandler(queue)
        handler.addFilter(ContextInjectingFilter())
        logging.getLogger().addHandler(handler)
        ```
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with permanently bound context fields.

    Example:
        ```python
        logger = get_logger(__name__, component="consumer")
        logger.info("Started")  # Always includes component
        ```
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Create new logger with additional bound context."""
        merged = {**self.extra, **context}
        return ContextBoundLogger(self.logger, **merged)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get logger with bound context."""
    return ContextBoundLogger(logging.getLogger(name), **context)
