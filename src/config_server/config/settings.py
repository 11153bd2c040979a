"""Application settings using Pydantic Settings."""

import os
from functools import lru_cache

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from config_server.core.models.repository import MultipleGitProperties

CONFIG_FILE_ENV = "CONFIG_SERVER_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config-server.yml"


def config_file() -> str:
    """Path of the YAML settings file, overridable through the environment."""
    return os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)


class Settings(BaseSettings):
    """Application settings.

    Loaded from, highest priority first: constructor arguments,
    ``CONFIG_SERVER_*`` environment variables, ``.env``, then the YAML file.
    A missing YAML file is ignored.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFIG_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8888
    api_workers: int = 1

    # --- Repositories ---
    # The default git repository and its pattern-matched repos.
    git: MultipleGitProperties | None = None
    # Additional repositories merged after each other by order.
    composite: list[MultipleGitProperties] = Field(default_factory=list)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_file()),
            file_secret_settings,
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
