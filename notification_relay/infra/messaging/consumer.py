"""Manual-ack consumption loop with republish-based retries and dead-lettering.

Every delivery ends in exactly one acknowledgement of the original message:

- handler succeeded: ack
- handler failed with retries left: publish a copy to the main queue with
  ``x-retries + 1``, then ack
- handler failed at the ceiling: publish a copy to the exchange under
  ``dlq`` with ``x-retries`` unchanged, then ack

Retries are new messages, never a requeue of the same delivery tag. There
is no nack path.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from aio_pika import DeliveryMode, Message

from notification_relay.core.exceptions import MessageParseException
from notification_relay.features.notifications.schemas import unwrap_envelope
from notification_relay.infra.logging import clear_log_context, set_log_context
from notification_relay.infra.messaging.headers import RetryEnvelope
from notification_relay.infra.metrics.prometheus import (
    rabbitmq_messages_published_total,
    relay_messages_in_progress,
    relay_messages_total,
)

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage

    from notification_relay.infra.messaging.topology import QueueTopology

logger = logging.getLogger(__name__)

TaskHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class MessageOutcome(StrEnum):
    """How a delivery was settled."""

    ACKED = "acked"
    RETRIED = "retried"
    DEAD_LETTERED = "dead_lettered"


def decode_task(body: bytes) -> Any:
    """Decode a UTF-8 JSON body and unwrap event envelopes.

    Raises:
        MessageParseException: If the body is not UTF-8 or not JSON.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MessageParseException("Message body is not valid UTF-8", extra={"error": str(exc)}) from exc
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MessageParseException(f"Message body is not valid JSON: {exc.msg}", extra={"position": exc.pos}) from exc
    return unwrap_envelope(parsed)


def _correlation_id(task: Any) -> Any:
    if not isinstance(task, Mapping):
        return None
    metadata = task.get("metadata")
    if isinstance(metadata, Mapping) and metadata.get("correlationId"):
        return metadata["correlationId"]
    data = task.get("data")
    payload = data.get("payload") if isinstance(data, Mapping) else None
    if isinstance(payload, Mapping):
        return payload.get("correlationId")
    return None


class ConsumptionLoop:
    """Consumes the main queue and applies the retry/dead-letter policy.

    Args:
        topology: Declared exchange and queues.
        max_retries: Republishes allowed before a message is dead-lettered.
        graceful_timeout: Seconds ``stop()`` waits for the in-flight message.
    """

    def __init__(
        self,
        topology: QueueTopology,
        max_retries: int,
        graceful_timeout: float = 15.0,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._topology = topology
        self._max_retries = max_retries
        self._graceful_timeout = graceful_timeout
        self._consumer_tag: str | None = None
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._fatal: asyncio.Future[BaseException] | None = None

    @property
    def is_consuming(self) -> bool:
        return self._consumer_tag is not None

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def start(self, handler: TaskHandler) -> None:
        """Register a manual-ack consumer on the main queue."""
        if self._consumer_tag is not None:
            return
        self._fatal = asyncio.get_running_loop().create_future()

        async def on_message(message: AbstractIncomingMessage) -> None:
            try:
                await self.process_message(message, handler)
            except Exception as exc:
                # Publishing a retry or DLQ copy failed; the relay shuts down
                logger.exception("Consumption loop failed", extra={"delivery_tag": message.delivery_tag})
                if self._fatal is not None and not self._fatal.done():
                    self._fatal.set_result(exc)

        self._consumer_tag = await self._topology.queue.consume(on_message, no_ack=False)
        logger.info(
            "Consuming messages",
            extra={"queue": self._topology.queue_name, "max_retries": self._max_retries},
        )

    async def wait_failed(self) -> BaseException:
        """Resolve with the error that broke the loop, if one ever does."""
        if self._fatal is None:
            raise RuntimeError("Consumption loop has not been started")
        return await self._fatal

    async def stop(self) -> None:
        """Stop accepting deliveries and let the in-flight message settle."""
        if self._consumer_tag is not None:
            consumer_tag, self._consumer_tag = self._consumer_tag, None
            await self._topology.queue.cancel(consumer_tag)
            logger.info("Consumer cancelled", extra={"queue": self._topology.queue_name})

        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self._graceful_timeout)
        except TimeoutError:
            logger.warning(
                "In-flight message did not finish before shutdown",
                extra={"in_flight": self._in_flight, "timeout": self._graceful_timeout},
            )

    async def process_message(
        self,
        message: AbstractIncomingMessage,
        handler: TaskHandler,
    ) -> MessageOutcome:
        """Process one delivery and acknowledge it exactly once.

        Raises:
            Exception: Only when publishing the retry or dead-letter copy
                fails; the original is still acknowledged.
        """
        envelope = RetryEnvelope.from_headers(message.body, message.headers)
        set_log_context(delivery_tag=message.delivery_tag, retries=envelope.retries)
        self._begin()

        cancelled = False
        try:
            outcome = await self._handle(envelope, handler)
        except asyncio.CancelledError:
            # Left unacked so the broker redelivers it
            cancelled = True
            raise
        finally:
            try:
                if not cancelled:
                    await message.ack()
            finally:
                self._end()
                clear_log_context()

        relay_messages_total.labels(outcome=outcome.value).inc()
        logger.info(
            "Message acknowledged",
            extra={"delivery_tag": message.delivery_tag, "outcome": outcome.value},
        )
        return outcome

    async def _handle(self, envelope: RetryEnvelope, handler: TaskHandler) -> MessageOutcome:
        try:
            task = decode_task(envelope.body)
            correlation_id = _correlation_id(task)
            if correlation_id is not None:
                set_log_context(correlation_id=correlation_id)
            await handler(task)
        except Exception as exc:
            return await self._handle_failure(envelope, exc)
        return MessageOutcome.ACKED

    async def _handle_failure(self, envelope: RetryEnvelope, exc: Exception) -> MessageOutcome:
        error = getattr(exc, "detail", None) or str(exc)
        if envelope.can_retry(self._max_retries):
            logger.warning(
                "Processing failed, scheduling retry %d/%d",
                envelope.retries + 1,
                self._max_retries,
                extra={"error": error, "error_type": type(exc).__name__},
            )
            await self._publish(
                self._topology.channel.default_exchange,
                envelope.body,
                envelope.retry_headers(),
                routing_key=self._topology.queue_name,
            )
            return MessageOutcome.RETRIED

        logger.error(
            "Processing failed after %d retries, routing to dead-letter queue",
            envelope.retries,
            extra={"error": error, "error_type": type(exc).__name__, "dlq": self._topology.dlq_name},
        )
        await self._publish(
            self._topology.exchange,
            envelope.body,
            envelope.dead_letter_headers(),
            routing_key=self._topology.dlq_routing_key,
        )
        return MessageOutcome.DEAD_LETTERED

    async def _publish(self, exchange: Any, body: bytes, headers: dict[str, Any], routing_key: str) -> None:
        message = Message(
            body,
            headers=headers,
            delivery_mode=DeliveryMode.PERSISTENT,
        )
        await exchange.publish(message, routing_key=routing_key)
        rabbitmq_messages_published_total.labels(routing_key=routing_key).inc()

    def _begin(self) -> None:
        self._in_flight += 1
        self._idle.clear()
        relay_messages_in_progress.inc()

    def _end(self) -> None:
        self._in_flight -= 1
        relay_messages_in_progress.dec()
        if self._in_flight == 0:
            self._idle.set()
