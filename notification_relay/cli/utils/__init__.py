"""CLI utilities for running async operations and formatting output."""

from notification_relay.cli.utils.async_runner import coro
from notification_relay.cli.utils.formatters import (
    error,
    header,
    info,
    section,
    success,
    warning,
)

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "section",
    "success",
    "warning",
]
