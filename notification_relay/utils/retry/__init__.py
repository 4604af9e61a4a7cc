from __future__ import annotations

from notification_relay.utils.retry.strategies import RetryStatistics, RetryStrategy

__all__ = ["RetryStatistics", "RetryStrategy"]
