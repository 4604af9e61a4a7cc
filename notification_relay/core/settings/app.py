"""Application-level settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_app_yaml_source

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """Process-wide settings.

    Environment variables use APP_ prefix.
    """

    service_name: str = Field(
        default="notification-relay",
        min_length=1,
        max_length=100,
        description="Service identifier used in logs and connection names.",
    )
    environment: Environment = Field(
        default="development",
        description="Deployment environment.",
    )
    callback_timeout: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="Timeout in seconds for delivery callback requests.",
    )
    metrics_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Port for the Prometheus exporter (0 disables it).",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_app_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
