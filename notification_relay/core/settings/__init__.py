"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app, rabbit, firebase, logging); each model
is frozen and loaded once through an LRU-cached loader:

    from notification_relay.core.settings import get_rabbit_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .firebase import FirebaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_firebase_settings,
    get_logging_settings,
    get_rabbit_settings,
    validate_runtime_settings,
)
from .logs import LoggingSettings
from .rabbit import DLQ_ROUTING_KEY, RabbitSettings, mask_url
from .unified import Settings, get_settings

__all__ = [
    "DLQ_ROUTING_KEY",
    "AppSettings",
    "FirebaseSettings",
    "LoggingSettings",
    "RabbitSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_firebase_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_settings",
    "mask_url",
    "validate_runtime_settings",
]
