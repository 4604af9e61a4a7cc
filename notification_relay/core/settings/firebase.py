"""Firebase Cloud Messaging credentials and delivery tuning."""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_firebase_yaml_source


class FirebaseSettings(BaseSettings):
    """Firebase service-account settings.

    Environment variables use FIREBASE_ prefix.
    Example: FIREBASE_PROJECT_ID=my-app, FIREBASE_CLIENT_EMAIL=relay@my-app.iam.gserviceaccount.com

    The private key is usually injected as a single-line env var with
    escaped newlines; they are restored on load.
    """

    project_id: str | None = Field(default=None, description="Firebase project id.")
    private_key: SecretStr | None = Field(
        default=None,
        description="Service-account PEM private key (\\n escapes allowed).",
    )
    client_email: str | None = Field(default=None, description="Service-account email.")

    app_name: str = Field(
        default="notification-relay",
        min_length=1,
        description="Name of the firebase_admin app owned by the push client.",
    )
    send_timeout: float = Field(
        default=10.0,
        gt=0,
        le=300.0,
        description="Deadline in seconds for a single provider send.",
    )
    bulk_batch_size: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Tokens per bulk batch (provider cap is 500).",
    )
    bulk_concurrency: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Concurrent sends within one bulk batch.",
    )

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
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
            create_firebase_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @field_validator("private_key", mode="before")
    @classmethod
    def unescape_private_key(cls, v: Any) -> Any:
        """Restore newlines in keys passed through single-line env vars."""
        if isinstance(v, SecretStr):
            v = v.get_secret_value()
        if isinstance(v, str):
            return v.replace("\\n", "\n")
        return v

    def missing_fields(self) -> list[str]:
        """Return env var names of required credentials that are absent."""
        missing = []
        if not self.project_id:
            missing.append("FIREBASE_PROJECT_ID")
        if self.private_key is None or not self.private_key.get_secret_value():
            missing.append("FIREBASE_PRIVATE_KEY")
        if not self.client_email:
            missing.append("FIREBASE_CLIENT_EMAIL")
        return missing

    @property
    def is_configured(self) -> bool:
        return not self.missing_fields()

    def to_service_account(self) -> dict[str, str]:
        """Build the service-account mapping expected by firebase_admin."""
        return {
            "type": "service_account",
            "project_id": self.project_id or "",
            "private_key": self.private_key.get_secret_value() if self.private_key else "",
            "client_email": self.client_email or "",
            "token_uri": "https://oauth2.googleapis.com/token",
        }
