"""Metrics infrastructure for Prometheus monitoring."""

from __future__ import annotations

import logging

from prometheus_client import generate_latest, start_http_server

from notification_relay.infra.metrics.prometheus import REGISTRY, application_info

logger = logging.getLogger(__name__)


def start_metrics_server(port: int, *, version: str, service: str, environment: str) -> bool:
    """Expose REGISTRY over HTTP on ``port``.

    Returns False without starting anything when ``port`` is 0.
    """
    application_info.labels(version=version, service=service, environment=environment).set(1)
    if port <= 0:
        return False

    start_http_server(port, registry=REGISTRY)
    logger.info("Prometheus metrics exporter listening", extra={"metrics_port": port})
    return True


__all__ = [
    "REGISTRY",
    "generate_latest",
    "start_metrics_server",
]
