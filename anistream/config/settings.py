"""AniStream Configuration Settings."""

import os
from enum import StrEnum
from functools import cached_property, lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from anistream.utils.logging import _get_logger

__all__ = [
    "AniStreamConfig",
    "CrunchyrollConfig",
    "HidiveConfig",
    "ListConfig",
    "LogLevel",
    "find_yaml_config_file",
    "get_config",
    "get_data_path",
]

_log = _get_logger(__name__)


def get_data_path() -> Path:
    """Get the directory holding configuration, settings and logs.

    Returns:
        Path: ``$AS_DATA_PATH`` or ``./data``, resolved.
    """
    return Path(os.getenv("AS_DATA_PATH", "./data")).resolve()


def find_yaml_config_file() -> Path:
    """Find the YAML configuration file in the data path.

    Returns:
        Path: The path to an existing YAML configuration file or the default location.
    """
    data_path = get_data_path()

    for ext in ("yaml", "yml"):
        yaml_file = data_path / f"config.{ext}"
        if yaml_file.exists():
            _log.debug(f"Using YAML config file: {yaml_file.resolve()}")
            return yaml_file.resolve()
    return data_path / "config.yaml"


class LogLevel(StrEnum):
    """Enumeration of available logging levels.

    Note: SUCCESS is a custom level used by this application.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def _missing_(cls, value: object) -> "LogLevel | None":
        """Allow case-insensitive lookups (``debug`` -> ``DEBUG``)."""
        if isinstance(value, str):
            for member in cls:
                if member.value == value.upper():
                    return member
        return None


class CrunchyrollConfig(BaseModel):
    """Crunchyroll client settings."""

    access_token: SecretStr = Field(
        default=SecretStr(""), description="Application access token"
    )
    unblocker: bool = Field(
        default=False, description="Create sessions through the unblocker first"
    )
    unblocker_url: str = Field(
        default="https://cr.yuna.moe/api/passthrough",
        description="Session passthrough used when the unblocker is enabled",
    )
    locale: str = Field(
        default="enUS", description="Default locale for streams and subtitles"
    )


class HidiveConfig(BaseModel):
    """Hidive client settings."""

    token: SecretStr = Field(
        default=SecretStr(""), description="Shared secret used to sign requests"
    )
    client_id: str = Field(default="", description="X-ApplicationId header value")


class ListConfig(BaseModel):
    """List-tracking service settings."""

    token: SecretStr | None = Field(
        default=None, description="Bearer token for the list-tracking service"
    )
    api_url: str = Field(
        default="https://graphql.anilist.co",
        description="GraphQL endpoint of the list-tracking service",
    )
    revert_on_error: bool = Field(
        default=False,
        description="Undo optimistic cache writes when a mutation fails",
    )


class AniStreamConfig(BaseSettings):
    """Configuration for AniStream.

    Sourced from ``config.yaml`` inside the data path, optionally combined with
    parameters passed directly to the model.
    """

    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Logging level for the application"
    )
    crunchyroll: CrunchyrollConfig = Field(default_factory=CrunchyrollConfig)
    hidive: HidiveConfig = Field(default_factory=HidiveConfig)
    tracker: ListConfig = Field(default_factory=ListConfig)

    @cached_property
    def data_path(self) -> Path:
        """Get the data path for AniStream.

        Returns:
            Path: The data path resolved from the environment or default location.
        """
        return get_data_path()

    @property
    def settings_file(self) -> Path:
        """Location of the durable settings store."""
        return self.data_path / "settings.yaml"

    @model_validator(mode="after")
    def warn_missing_secrets(self) -> "AniStreamConfig":
        """Log which providers cannot authenticate with the current configuration."""
        if not self.crunchyroll.access_token.get_secret_value():
            _log.debug("No Crunchyroll access token configured")
        if not (self.hidive.token.get_secret_value() and self.hidive.client_id):
            _log.debug("Hidive token or client id missing, requests will be rejected")
        return self

    def __str__(self) -> str:
        """Creates a human-readable representation of the configuration.

        Returns:
            str: Configuration summary with secrets left out.
        """
        return (
            f"AniStream Config: DATA_PATH: {self.data_path}, "
            f"LOG_LEVEL: {self.log_level}, LIST_API: {self.tracker.api_url}, "
            f"CR_UNBLOCKER: {self.crunchyroll.unblocker}"
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the order of configuration sources."""
        return (
            init_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=find_yaml_config_file()),
        )

    model_config = SettingsConfigDict(extra="ignore")


@lru_cache(maxsize=1)
def get_config() -> AniStreamConfig:
    """Get the singleton instance of AniStreamConfig.

    Returns:
        AniStreamConfig: The singleton configuration instance.
    """
    return AniStreamConfig()
