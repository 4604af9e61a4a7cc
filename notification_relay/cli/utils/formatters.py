"""Output formatting utilities for CLI commands."""

import click


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red to stderr."""
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    click.secho(f"\n{message}", fg="cyan", bold=True)


def section(title: str) -> None:
    """Print a titled divider."""
    click.secho(f"\n{'-' * 60}", dim=True)
    click.secho(title, bold=True)
    click.secho("-" * 60, dim=True)
