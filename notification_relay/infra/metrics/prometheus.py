"""Prometheus metrics for the notification relay."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Custom registry so tests and the exporter only see relay metrics
REGISTRY = CollectorRegistry()

# Covers provider round trips from 10ms to 30s
DISPATCH_LATENCY_BUCKETS = (
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
)

# Message consumption metrics
relay_messages_total = Counter(
    "relay_messages_total",
    "Total number of consumed messages by final outcome (acked, retried, dead_lettered)",
    ["outcome"],
    registry=REGISTRY,
)

relay_messages_in_progress = Gauge(
    "relay_messages_in_progress",
    "Number of messages currently being processed",
    registry=REGISTRY,
)

# Delivery metrics
notification_deliveries_total = Counter(
    "notification_deliveries_total",
    "Total number of push sends by notification type and status",
    ["type", "status"],
    registry=REGISTRY,
)

notification_dispatch_duration_seconds = Histogram(
    "notification_dispatch_duration_seconds",
    "Time spent dispatching one notification task to the push provider",
    ["type"],
    buckets=DISPATCH_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# Broker metrics
rabbitmq_connection_attempts_total = Counter(
    "rabbitmq_connection_attempts_total",
    "Total number of broker connection attempts by result",
    ["result"],
    registry=REGISTRY,
)

rabbitmq_messages_published_total = Counter(
    "rabbitmq_messages_published_total",
    "Total number of messages published to RabbitMQ",
    ["routing_key"],
    registry=REGISTRY,
)

# Callback metrics
delivery_callbacks_total = Counter(
    "delivery_callbacks_total",
    "Total number of delivery callbacks by status",
    ["status"],
    registry=REGISTRY,
)

# Application metrics
application_info = Gauge(
    "application_info",
    "Application information",
    ["version", "service", "environment"],
    registry=REGISTRY,
)
