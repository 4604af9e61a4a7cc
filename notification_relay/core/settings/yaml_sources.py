"""Custom YAML config source with conf.d directory support.

Extends pydantic-settings YamlConfigSettingsSource to support:
- Main YAML file (e.g., conf/rabbit.yaml)
- conf.d directory merging (e.g., conf/rabbit.d/*.yaml)
- Alphabetical file ordering in conf.d

Files are optional; environment variables remain the production source.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic_settings import YamlConfigSettingsSource

if TYPE_CHECKING:
    from pydantic_settings import BaseSettings


class ConfDYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with conf.d directory support.

    Supports the standard Linux conf.d pattern:
    - conf/rabbit.yaml        (base configuration)
    - conf/rabbit.d/*.yaml    (override files, merged alphabetically)

    Environment variable can override config directory:
    - RABBIT_CONFIG_DIR=/custom/path
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: str = "app.yaml",
        confd_dir: str | None = "app.d",
        config_dir_env: str = "CONFIG_DIR",
        base_dir: str = "conf",
        yaml_file_encoding: str | None = "utf-8",
    ) -> None:
        """Initialize the conf.d YAML source.

        Args:
            settings_cls: The settings class being configured.
            yaml_file: Main YAML file name (e.g., "rabbit.yaml").
            confd_dir: conf.d subdirectory name (e.g., "rabbit.d"), or None to disable.
            config_dir_env: Environment variable to override base directory.
            base_dir: Default base directory for config files.
            yaml_file_encoding: File encoding for YAML files.
        """
        config_base = Path(os.getenv(config_dir_env, base_dir))

        yaml_files: list[Path] = []

        main_file = config_base / yaml_file
        if main_file.exists():
            yaml_files.append(main_file)

        if confd_dir:
            confd_path = config_base / confd_dir
            if confd_path.exists() and confd_path.is_dir():
                yaml_files.extend(sorted(confd_path.glob("*.yaml")))
                yaml_files.extend(sorted(confd_path.glob("*.yml")))

        self._yaml_files = yaml_files

        super().__init__(
            settings_cls=settings_cls,
            yaml_file=yaml_files if yaml_files else None,
            yaml_file_encoding=yaml_file_encoding,
        )

    def __repr__(self) -> str:
        """Return human-readable summary of configured YAML files."""
        files_str = ", ".join(str(f) for f in self._yaml_files)
        return f"{self.__class__.__name__}(yaml_files=[{files_str}])"


def _create_source(
    settings_cls: type[BaseSettings],
    domain: str,
) -> ConfDYamlConfigSettingsSource:
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file=f"{domain}.yaml",
        confd_dir=f"{domain}.d",
        config_dir_env=f"{domain.upper()}_CONFIG_DIR",
    )


def create_app_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for AppSettings (conf/app.yaml, conf/app.d/)."""
    return _create_source(settings_cls, "app")


def create_rabbit_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for RabbitSettings.

    Loads from:
    - conf/rabbit.yaml (base)
    - conf/rabbit.d/*.yaml (overrides)

    Override directory with: RABBIT_CONFIG_DIR=/custom/path
    """
    return _create_source(settings_cls, "rabbit")


def create_firebase_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for FirebaseSettings.

    Loads from:
    - conf/firebase.yaml (base)
    - conf/firebase.d/*.yaml (overrides)

    Override directory with: FIREBASE_CONFIG_DIR=/custom/path
    """
    return _create_source(settings_cls, "firebase")


def create_logging_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for LoggingSettings (conf/logging.yaml, conf/logging.d/)."""
    return _create_source(settings_cls, "logging")
