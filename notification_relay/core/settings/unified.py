"""Unified settings composition for convenient access.

Usage:
    from notification_relay.core.settings import get_settings

    settings = get_settings()
    print(settings.rabbit.queue_name)
    print(settings.firebase.project_id)

Each nested settings class still loads from its own environment prefix
(APP_, RABBIT_, FIREBASE_, LOG_), not from a unified prefix.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .firebase import FirebaseSettings
from .logs import LoggingSettings
from .rabbit import RabbitSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Example:
        settings = Settings()
        assert settings.rabbit.dlq_routing_key == "dlq"
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    rabbit: RabbitSettings = Field(default_factory=RabbitSettings)
    firebase: FirebaseSettings = Field(default_factory=FirebaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached unified settings."""
    return Settings()
