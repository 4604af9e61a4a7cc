"""Monitoring commands."""

import sys

import aio_pika
import click
from aio_pika.exceptions import ChannelClosed

from notification_relay.cli.utils import coro, error, header, warning
from notification_relay.core.settings import get_rabbit_settings


@click.group(name="monitor")
def monitor() -> None:
    """Monitoring commands."""


@monitor.command(name="queues")
@coro
async def show_queues() -> None:
    """Show message and consumer counts for the main queue and the DLQ."""
    header("Message Queue Statistics")

    rabbit_settings = get_rabbit_settings()
    if not rabbit_settings.is_configured:
        warning("RabbitMQ is not configured")
        return

    try:
        connection = await aio_pika.connect_robust(rabbit_settings.get_url())

        async with connection:
            click.echo()
            click.echo(f"  {'Queue':<40} {'Messages':<12} {'Consumers':<12}")
            click.echo("  " + "-" * 64)

            for queue_name in (rabbit_settings.queue_name, rabbit_settings.dlq_name):
                # A failed passive declare closes the channel, so use one per queue
                channel = await connection.channel()
                try:
                    queue = await channel.declare_queue(queue_name, passive=True)
                except ChannelClosed:
                    click.echo(f"  {queue_name:<40} {'missing':<12} {'-':<12}")
                    continue

                declaration = queue.declaration_result
                click.echo(
                    f"  {queue_name:<40} {declaration.message_count:<12} {declaration.consumer_count:<12}"
                )
                await channel.close()

        click.echo()

    except Exception as e:
        error(f"Failed to get queue stats: {e}")
        sys.exit(1)
