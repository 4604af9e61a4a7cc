"""Broker connection with bounded exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection

from notification_relay.core.settings.rabbit import mask_url
from notification_relay.infra.metrics.prometheus import rabbitmq_connection_attempts_total
from notification_relay.utils.retry import RetryStatistics, RetryStrategy

logger = logging.getLogger(__name__)

Connector = Callable[..., Awaitable[AbstractConnection]]
Sleep = Callable[[float], Awaitable[Any]]


class ConnectionHandle:
    """Owns one broker connection and the single channel opened on it.

    Closed channel first, then connection.
    """

    def __init__(self, connection: AbstractConnection) -> None:
        self.connection = connection
        self._channel: AbstractChannel | None = None

    @property
    def is_closed(self) -> bool:
        return bool(self.connection.is_closed)

    async def channel(self) -> AbstractChannel:
        """Return the handle's channel, opening it on first use."""
        if self._channel is None:
            self._channel = await self.connection.channel()
        return self._channel

    async def close(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None and not channel.is_closed:
            await channel.close()
        if not self.connection.is_closed:
            await self.connection.close()
        logger.info("Broker connection closed")


class ConnectionManager:
    """Connects to RabbitMQ, retrying with deterministic doubling backoff.

    ``max_retries`` retries follow the first attempt, so at most
    ``max_retries + 1`` connection attempts are made, waiting 1s, 2s, 4s, ...
    between them. When every attempt fails the last error propagates
    unchanged.

    Args:
        url: AMQP URL.
        max_retries: Retries after the first attempt (>= 0).
        connector: Coroutine function opening a connection, defaults to
            ``aio_pika.connect_robust``.
        sleep: Delay primitive, replaceable in tests.
        connection_name: Name shown in the RabbitMQ management UI.
        heartbeat: Heartbeat interval in seconds.
    """

    def __init__(
        self,
        url: str,
        max_retries: int = 5,
        *,
        connector: Connector | None = None,
        sleep: Sleep = asyncio.sleep,
        connection_name: str | None = None,
        heartbeat: int | None = None,
    ) -> None:
        self._url = url
        self._strategy = RetryStrategy(
            max_retries=max_retries,
            initial_delay=1.0,
            exponential_base=2.0,
        )
        self._connector = connector or aio_pika.connect_robust
        self._sleep = sleep
        self._connect_kwargs: dict[str, Any] = {}
        if connection_name:
            self._connect_kwargs["client_properties"] = {"connection_name": connection_name}
        if heartbeat is not None:
            self._connect_kwargs["heartbeat"] = heartbeat
        self.statistics = RetryStatistics()

    @property
    def max_retries(self) -> int:
        return self._strategy.max_retries

    async def connect(self) -> ConnectionHandle:
        """Open a connection, retrying up to ``max_retries`` times."""
        self.statistics = RetryStatistics()
        masked = mask_url(self._url)
        attempt = 0
        while True:
            self.statistics.attempts += 1
            logger.info(
                "Connecting to RabbitMQ",
                extra={
                    "url": masked,
                    "attempt": attempt + 1,
                    "max_attempts": self._strategy.max_attempts,
                },
            )
            try:
                connection = await self._connector(self._url, **self._connect_kwargs)
            except Exception as exc:
                rabbitmq_connection_attempts_total.labels(result="failure").inc()
                if not self._strategy.should_retry(attempt):
                    self.statistics.record_failure(exc)
                    logger.error(
                        "Giving up connecting to RabbitMQ",
                        extra={
                            "url": masked,
                            "attempts": self.statistics.attempts,
                            "total_delay": self.statistics.total_delay,
                            "errors": [mask_url(error) for error in self.statistics.errors],
                        },
                    )
                    raise

                delay = self._strategy.calculate_delay(attempt)
                self.statistics.record_failure(exc, delay)
                logger.warning(
                    "RabbitMQ connection failed, retrying in %.0fs",
                    delay,
                    extra={"url": masked, "attempt": attempt + 1, "error": str(exc)},
                )
                await self._sleep(delay)
                attempt += 1
                continue

            rabbitmq_connection_attempts_total.labels(result="success").inc()
            logger.info(
                "Connected to RabbitMQ",
                extra={"url": masked, "attempts": self.statistics.attempts},
            )
            return ConnectionHandle(connection)
