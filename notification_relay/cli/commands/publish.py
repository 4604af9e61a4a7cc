"""Publish a test notification to the relay's exchange."""

import json
import sys
import uuid
from datetime import UTC, datetime
from typing import Any

import aio_pika
import click

from notification_relay.cli.utils import coro, error, info, success
from notification_relay.core.settings import get_rabbit_settings


def build_test_message(
    *,
    token: str | None,
    bulk_tokens: tuple[str, ...],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    envelope: bool = False,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Build the JSON document a producer would publish."""
    if bulk_tokens:
        task: dict[str, Any] = {"to": list(bulk_tokens), "type": "bulk"}
    else:
        task = {"to": token, "type": "single"}

    task["notification"] = {"title": title, "body": body}
    task["data"] = {"payload": {"action": "openApp", "screen": "home"}} if data is None else data

    if not envelope:
        return task

    now = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {
        "eventType": "NotificationRequested",
        "version": "1.0",
        "producer": "notification-relay-cli",
        "correlationId": correlation_id or str(uuid.uuid4()),
        "timestamp": now,
        "data": {**task, "timestamp": now},
    }


@click.command(name="publish")
@click.option("--token", help="Device token for a single notification.")
@click.option(
    "--bulk",
    "bulk_tokens",
    multiple=True,
    help="Device token for a bulk notification (repeat for each token).",
)
@click.option("--title", default="Test Notification", show_default=True)
@click.option(
    "--body",
    default="This is a test notification from the notification relay",
    show_default=True,
)
@click.option("--data", "data_json", help="JSON object sent as the data payload.")
@click.option("--envelope", is_flag=True, help="Wrap in a NotificationRequested event.")
@click.option("--correlation-id", help="Correlation id for --envelope (random if omitted).")
@coro
async def publish(
    token: str | None,
    bulk_tokens: tuple[str, ...],
    title: str,
    body: str,
    data_json: str | None,
    envelope: bool,
    correlation_id: str | None,
) -> None:
    """Publish a test notification to the exchange the relay consumes."""
    if bool(token) == bool(bulk_tokens):
        error("Pass either --token or at least one --bulk token")
        sys.exit(2)

    data: dict[str, Any] | None = None
    if data_json:
        try:
            data = json.loads(data_json)
        except json.JSONDecodeError as e:
            error(f"--data is not valid JSON: {e}")
            sys.exit(2)
        if not isinstance(data, dict):
            error("--data must be a JSON object")
            sys.exit(2)

    rabbit_settings = get_rabbit_settings()
    if not rabbit_settings.is_configured:
        error("RabbitMQ is not configured (set RABBITMQ)")
        sys.exit(1)

    message = build_test_message(
        token=token,
        bulk_tokens=bulk_tokens,
        title=title,
        body=body,
        data=data,
        envelope=envelope,
        correlation_id=correlation_id,
    )

    try:
        connection = await aio_pika.connect_robust(rabbit_settings.get_url())
        async with connection:
            channel = await connection.channel()
            exchange = await channel.declare_exchange(
                rabbit_settings.exchange_name,
                aio_pika.ExchangeType.DIRECT,
                durable=True,
            )
            await exchange.publish(
                aio_pika.Message(
                    json.dumps(message).encode("utf-8"),
                    content_type="application/json",
                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                ),
                routing_key=rabbit_settings.routing_key,
            )
    except Exception as e:
        error(f"Failed to publish test message: {e}")
        sys.exit(1)

    info(f"Exchange: {rabbit_settings.exchange_name}, routing key: {rabbit_settings.routing_key}")
    success("Test message sent to RabbitMQ")
