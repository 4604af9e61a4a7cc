"""Configuration management commands."""

import json
import sys
from typing import Any

import click
import yaml
from pydantic import ValidationError

from notification_relay.cli.utils import error, header, info, success, warning
from notification_relay.core.exceptions import ConfigurationException
from notification_relay.core.settings import Settings, get_settings, validate_runtime_settings


def build_config_dict(settings: Settings, show_secrets: bool = False) -> dict[str, dict[str, Any]]:
    """Effective settings grouped by domain, secrets masked unless requested."""
    rabbit = settings.rabbit
    firebase = settings.firebase
    private_key = firebase.private_key.get_secret_value() if firebase.private_key else None

    return {
        "app": {
            "service_name": settings.app.service_name,
            "environment": settings.app.environment,
            "callback_timeout": settings.app.callback_timeout,
            "metrics_port": settings.app.metrics_port,
        },
        "rabbit": {
            "url": rabbit.url if show_secrets else rabbit.masked_url,
            "exchange": rabbit.exchange_name,
            "queue": rabbit.queue_name,
            "routing_key": rabbit.routing_key,
            "dlq": rabbit.dlq_name,
            "dlq_routing_key": rabbit.dlq_routing_key,
            "max_retries": rabbit.max_retries,
            "connect_max_retries": rabbit.connect_max_retries,
            "prefetch_count": rabbit.prefetch_count,
        },
        "firebase": {
            "project_id": firebase.project_id,
            "client_email": firebase.client_email,
            "private_key": private_key if show_secrets else ("***" if private_key else None),
            "app_name": firebase.app_name,
            "send_timeout": firebase.send_timeout,
            "bulk_batch_size": firebase.bulk_batch_size,
            "bulk_concurrency": firebase.bulk_concurrency,
        },
        "logging": {
            "level": settings.logging.level,
            "json_logs": settings.logging.json_logs,
            "file_path": settings.logging.file_path,
        },
    }


@click.group(name="config")
def config() -> None:
    """Configuration management commands."""


@config.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml", "table"]),
    default="table",
    help="Output format",
)
@click.option(
    "--show-secrets/--hide-secrets",
    default=False,
    help="Show sensitive values (broker credentials, private key)",
)
def show(output_format: str, show_secrets: bool) -> None:
    """Display current configuration settings."""
    try:
        settings = get_settings()
    except ValidationError as e:
        error(f"Invalid configuration: {e}")
        sys.exit(1)

    config_dict = build_config_dict(settings, show_secrets=show_secrets)

    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2, default=str))
    elif output_format == "yaml":
        click.echo(yaml.safe_dump(json.loads(json.dumps(config_dict, default=str)), default_flow_style=False))
    else:
        if not show_secrets:
            warning("Secrets are hidden. Use --show-secrets to display them.")
        for name, values in config_dict.items():
            click.echo(f"\n[{name.upper()}]")
            for key, value in values.items():
                click.echo(f"  {key:22} = {value}")
        click.echo()


@config.command()
def validate() -> None:
    """Check that every value the relay needs at startup is present."""
    info("Validating configuration...")

    try:
        settings = get_settings()
    except ValidationError as e:
        error(f"Invalid configuration: {e}")
        sys.exit(1)
    success("Settings loaded")

    header("Required values")
    try:
        validate_runtime_settings(settings.rabbit, settings.firebase)
    except ConfigurationException as e:
        for name in e.extra.get("missing", []):
            error(f"{name} is not set")
        error(e.detail)
        sys.exit(1)

    success(f"RabbitMQ URL: {settings.rabbit.masked_url}")
    success(f"Firebase project: {settings.firebase.project_id}")
    success("Configuration is valid")
