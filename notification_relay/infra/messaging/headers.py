"""Retry counter carried in message headers.

The counter lives in ``x-retries``: absent on first delivery, incremented on
every republish to the main queue and preserved when the message is
dead-lettered.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

RETRIES_HEADER = "x-retries"


@dataclass(frozen=True, slots=True)
class RetryEnvelope:
    """Raw message bytes plus the retry counter read from its headers.

    Example:
        envelope = RetryEnvelope.from_headers(message.body, message.headers)
        if envelope.retries < max_retries:
            await publish(envelope.body, headers=envelope.retry_headers())
        else:
            await publish(envelope.body, headers=envelope.dead_letter_headers())
    """

    body: bytes
    retries: int = 0

    @classmethod
    def from_headers(cls, body: bytes, headers: dict[str, Any] | None) -> RetryEnvelope:
        if not headers:
            return cls(body=body)
        return cls(body=body, retries=max(_safe_int(headers.get(RETRIES_HEADER)), 0))

    def can_retry(self, max_retries: int) -> bool:
        return self.retries < max_retries

    def retry_headers(self) -> dict[str, int]:
        """Headers for the copy republished to the main queue."""
        return {RETRIES_HEADER: self.retries + 1}

    def dead_letter_headers(self) -> dict[str, int]:
        """Headers for the copy published to the dead-letter queue."""
        return {RETRIES_HEADER: self.retries}


def _safe_int(value: Any, default: int = 0) -> int:
    """Convert a header value to int, falling back to ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


__all__ = ["RETRIES_HEADER", "RetryEnvelope"]
