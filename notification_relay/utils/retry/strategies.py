"""Backoff strategy and bookkeeping for bounded retry loops."""

from __future__ import annotations

from dataclasses import dataclass, field


class RetryStrategy:
    """Deterministic exponential backoff: ``initial_delay * exponential_base ** attempt``.

    ``max_retries`` counts retries, not attempts, so a strategy with
    ``max_retries=5`` allows six attempts in total.
    """

    def __init__(
        self,
        max_retries: int = 5,
        initial_delay: float = 1.0,
        exponential_base: float = 2.0,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.exponential_base = exponential_base

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt follows a failure on zero-based ``attempt``."""
        return attempt < self.max_retries

    def calculate_delay(self, attempt: int) -> float:
        return self.initial_delay * (self.exponential_base**attempt)


@dataclass
class RetryStatistics:
    """Statistics captured during a retry session."""

    attempts: int = 0
    total_delay: float = 0.0
    errors: list[str] = field(default_factory=list)

    def record_failure(self, exc: BaseException, delay: float = 0.0) -> None:
        self.errors.append(f"{type(exc).__name__}: {exc}")
        self.total_delay += delay
