"""Start the relay."""

import asyncio
import logging
import sys

import click

from notification_relay import __version__
from notification_relay.cli.utils import error, info, success
from notification_relay.core.exceptions import ConfigurationException
from notification_relay.core.settings import get_settings
from notification_relay.infra.messaging.relay import NotificationRelay
from notification_relay.infra.metrics import start_metrics_server

logger = logging.getLogger(__name__)


@click.command(name="run")
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=None,
    help="Override MAX_RETRIES for this process.",
)
@click.option(
    "--metrics-port",
    type=click.IntRange(min=0, max=65535),
    default=None,
    help="Override APP_METRICS_PORT (0 disables the exporter).",
)
def run(max_retries: int | None, metrics_port: int | None) -> None:
    """Consume notifications from RabbitMQ and deliver them through Firebase.

    Blocks until SIGINT/SIGTERM. Exits 1 when configuration is missing, the
    broker stays unreachable or the consumption loop fails.
    """
    settings = get_settings()
    if max_retries is not None:
        settings = settings.model_copy(
            update={"rabbit": settings.rabbit.model_copy(update={"max_retries": max_retries})}
        )

    info(f"Broker: {settings.rabbit.masked_url}")
    info(f"Queue: {settings.rabbit.queue_name} (max retries {settings.rabbit.max_retries})")

    port = settings.app.metrics_port if metrics_port is None else metrics_port
    if start_metrics_server(
        port,
        version=__version__,
        service=settings.app.service_name,
        environment=settings.app.environment,
    ):
        info(f"Metrics: http://0.0.0.0:{port}/metrics")

    relay = NotificationRelay(settings)
    try:
        asyncio.run(relay.run())
    except ConfigurationException as e:
        error(e.detail)
        sys.exit(1)
    except KeyboardInterrupt:
        info("Interrupted")
    except Exception as e:
        logger.exception("Relay terminated by unhandled error")
        error(f"Relay failed: {e}")
        sys.exit(1)

    success("Relay stopped")
