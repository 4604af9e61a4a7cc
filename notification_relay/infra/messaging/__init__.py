"""RabbitMQ messaging: connection, topology, consumption and relay wiring."""

from notification_relay.infra.messaging.connection import ConnectionHandle, ConnectionManager
from notification_relay.infra.messaging.consumer import ConsumptionLoop, MessageOutcome, decode_task
from notification_relay.infra.messaging.headers import RETRIES_HEADER, RetryEnvelope
from notification_relay.infra.messaging.topology import QueueTopology, setup_topology

__all__ = [
    "RETRIES_HEADER",
    "ConnectionHandle",
    "ConnectionManager",
    "ConsumptionLoop",
    "MessageOutcome",
    "QueueTopology",
    "RetryEnvelope",
    "decode_task",
    "setup_topology",
]
