"""Exchange and queue declarations for the notification pipeline.

Declared on every start with durable, re-assertable arguments:

- ``process_notification_exchange``: direct exchange
- ``process_notification``: main queue, bound with ``notification``
- ``process_notification_dlq``: dead-letter queue, bound with ``dlq``

The main queue carries no ``x-dead-letter-*`` arguments. Dead-lettering is
an explicit publish by the consumer, and adding arguments would clash with
queues already declared by producers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aio_pika import ExchangeType

from notification_relay.core.settings.rabbit import DLQ_ROUTING_KEY

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

    from notification_relay.core.settings import RabbitSettings
    from notification_relay.infra.messaging.connection import ConnectionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueueTopology:
    """Declared broker objects the consumption loop works against."""

    channel: AbstractChannel
    exchange: AbstractExchange
    queue: AbstractQueue
    dlq: AbstractQueue
    routing_key: str
    dlq_routing_key: str = DLQ_ROUTING_KEY

    @property
    def queue_name(self) -> str:
        return self.queue.name

    @property
    def dlq_name(self) -> str:
        return self.dlq.name


async def setup_topology(handle: ConnectionHandle, settings: RabbitSettings) -> QueueTopology:
    """Declare exchange, main queue and dead-letter queue and bind them.

    Must run after a successful connect and before consumption starts.
    Declaration errors propagate; connection retries already happened.
    """
    channel = await handle.channel()
    await channel.set_qos(prefetch_count=settings.prefetch_count)

    exchange = await channel.declare_exchange(
        settings.exchange_name,
        ExchangeType.DIRECT,
        durable=True,
    )

    queue = await channel.declare_queue(settings.queue_name, durable=True)
    await queue.bind(exchange, routing_key=settings.routing_key)

    dlq = await channel.declare_queue(settings.dlq_name, durable=True)
    await dlq.bind(exchange, routing_key=DLQ_ROUTING_KEY)

    logger.info(
        "Queue topology declared",
        extra={
            "exchange": settings.exchange_name,
            "queue": settings.queue_name,
            "routing_key": settings.routing_key,
            "dlq": settings.dlq_name,
            "prefetch_count": settings.prefetch_count,
        },
    )
    return QueueTopology(
        channel=channel,
        exchange=exchange,
        queue=queue,
        dlq=dlq,
        routing_key=settings.routing_key,
    )
