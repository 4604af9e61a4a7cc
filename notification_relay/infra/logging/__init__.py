"""Logging infrastructure.

Provides structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection (delivery_tag, retries, correlation_id, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Per-handler log levels (console vs file)

Basic usage:
    from notification_relay.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(delivery_tag=7, retries=0)
    logger.info("Processing message")  # Includes delivery_tag and retries
"""

from notification_relay.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from notification_relay.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)
from notification_relay.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_log_context",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
