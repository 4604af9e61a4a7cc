"""Main CLI entry point for the notification relay."""

import click

from notification_relay import __version__
from notification_relay.cli.commands import config, monitor, publish, run
from notification_relay.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="notification-relay")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notification relay: RabbitMQ consumer delivering push notifications via Firebase.

    \b
    Commands:
      run        Consume and deliver notifications until stopped
      publish    Publish a test notification
      config     Show and validate configuration
      monitor    Queue statistics

    \b
    Quick Start:
      notification-relay config validate
      notification-relay run
      notification-relay publish --token <device-token>
    """
    ctx.ensure_object(dict)


cli.add_command(run.run)
cli.add_command(publish.publish)
cli.add_command(config.config)
cli.add_command(monitor.monitor)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
