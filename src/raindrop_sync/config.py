"""Centralized configuration management for raindrop-sync.

This module provides a Pydantic Settings-based configuration system with
environment variable integration, type validation, and clear error handling.
Paths are plain configuration values handed to each component; nothing below
reads the working directory implicitly at import time.
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import MultiAccountConfig, RaindropCredentials

DEFAULT_ACCOUNT_ID = "default"

# Unprefixed variables read by earlier releases, mapped to RaindropConfig fields
LEGACY_RAINDROP_VARIABLES = {
    "client_id": "RAINDROP_CLIENT_ID",
    "client_secret": "RAINDROP_CLIENT_SECRET",
    "redirect_uri": "RAINDROP_REDIRECT_URI",
}


def _read_environment(env_file: Any) -> dict[str, str]:
    """Merge a dotenv file and the process environment, upper-casing keys.

    Process variables take precedence over the file, matching pydantic-settings.
    """
    values: dict[str, str] = {}
    if isinstance(env_file, str | Path) and Path(env_file).is_file():
        for key, value in dotenv_values(env_file).items():
            if value is not None:
                values[key.upper()] = value
    values.update({key.upper(): value for key, value in os.environ.items()})
    return values


class RaindropConfig(BaseModel):
    """Raindrop.io API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="", description="Raindrop OAuth client ID")
    client_secret: str = Field(default="", description="Raindrop OAuth client secret")
    redirect_uri: str = Field(
        default="http://localhost:3000/callback",
        description="OAuth redirect URI registered with the application",
    )
    auth_base_url: str = Field(
        default="https://raindrop.io", description="OAuth authorize/token host"
    )
    api_base_url: str = Field(
        default="https://api.raindrop.io/rest/v1", description="REST API root"
    )
    page_size: int = Field(
        default=50, ge=1, le=50, description="Bookmarks requested per page"
    )
    max_pages: int = Field(
        default=100, ge=1, le=1000, description="Hard cap on pages per fetch"
    )
    request_timeout: float = Field(
        default=30.0, ge=1.0, le=300.0, description="HTTP timeout in seconds"
    )

    @property
    def credentials(self) -> RaindropCredentials:
        return RaindropCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
        )


class StorageConfig(BaseModel):
    """Bookmark and token storage configuration."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["duckdb", "files"] = Field(
        default="duckdb", description="Bookmark storage backend"
    )
    data_path: Path = Field(
        default=Path("data"), description="Root directory for per-account data"
    )
    key_mode: Literal["id", "url"] = Field(
        default="id", description="Primary key of the DuckDB bookmarks table"
    )
    database_filename: str = Field(default="bookmarks.duckdb")
    files_dirname: str = Field(default="bookmarks")
    tokens_filename: str = Field(default="tokens.json")

    @field_validator("database_filename")
    @classmethod
    def validate_database_filename(cls, v: str) -> str:
        """Ensure database file has correct extension."""
        if not v.endswith((".db", ".duckdb")):
            raise ValueError("Database filename must end with .db or .duckdb")
        return v

    def account_dir(self, account_id: str) -> Path:
        return self.data_path / account_id

    def tokens_path(self, account_id: str) -> Path:
        return self.account_dir(account_id) / self.tokens_filename


class SyncConfig(BaseModel):
    """Sync run configuration settings."""

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(
        default=10, ge=1, le=1000, description="Bookmarks written per transaction"
    )
    batch_pause_seconds: float = Field(
        default=0.5, ge=0.0, le=60.0, description="Pause between storage batches"
    )
    accounts_file: Path | None = Field(
        default=None, description="YAML/JSON file listing accounts to sync"
    )


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/raindrop-sync.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=10, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class RaindropSyncSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the RAINDROP_SYNC_ prefix.
    For nested configs, use double underscores: RAINDROP_SYNC_STORAGE__BACKEND

    The unprefixed RAINDROP_CLIENT_ID, RAINDROP_CLIENT_SECRET and
    RAINDROP_REDIRECT_URI variables are honored when no Raindrop section is
    given explicitly.
    """

    raindrop: RaindropConfig = Field(default_factory=RaindropConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    debug: bool = Field(default=False, description="Enable debug mode")

    def __init__(self, **kwargs: Any):
        """Initialize settings with legacy environment variable overrides.

        Args:
            **kwargs: Additional configuration overrides
        """
        # Handle legacy Raindrop environment variables. They are passed as a
        # partial dict so prefixed RAINDROP_SYNC_RAINDROP__* values still merge in.
        if "raindrop" not in kwargs:
            environment = _read_environment(
                kwargs.get("_env_file", type(self).model_config.get("env_file"))
            )
            raindrop_config: dict[str, Any] = {}
            for field_name, variable in LEGACY_RAINDROP_VARIABLES.items():
                value = environment.get(variable)
                prefixed = f"RAINDROP_SYNC_RAINDROP__{field_name.upper()}"
                if value and prefixed not in environment:
                    raindrop_config[field_name] = value

            if raindrop_config:
                kwargs["raindrop"] = raindrop_config

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RAINDROP_SYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def has_process_credentials(self) -> bool:
        """Return True when process-level client ID and secret are set."""
        return self.raindrop.credentials.validate_credentials()


def load_accounts_file(path: Path | str) -> MultiAccountConfig:
    """Load a multi-account configuration file.

    The file is YAML (JSON is accepted as a YAML subset) with a top-level
    ``accounts`` list. Keys may use snake_case or the camelCase of the token
    file (``clientId``, ``accessToken``, ...).

    Args:
        path: Location of the accounts file

    Returns:
        MultiAccountConfig: Parsed accounts

    Raises:
        ValueError: If the file is missing, unreadable, or invalid
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ValueError(f"Accounts file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Could not read accounts file {path}: {e}") from e

    if data is None:
        return MultiAccountConfig()
    if isinstance(data, list):
        data = {"accounts": data}
    if not isinstance(data, dict):
        raise ValueError(f"Accounts file {path} must contain an 'accounts' list")

    try:
        return MultiAccountConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid accounts file {path}: {e}") from e


_settings_cache: RaindropSyncSettings | None = None


def get_settings() -> RaindropSyncSettings:
    """Get the cached settings instance.

    Returns:
        RaindropSyncSettings: The configuration instance

    Raises:
        ValueError: If configuration is invalid
    """
    global _settings_cache

    if _settings_cache is not None:
        return _settings_cache

    try:
        settings = RaindropSyncSettings()
    except Exception as e:
        raise ValueError(f"Configuration error: {e}") from e

    _settings_cache = settings
    return settings


def reload_settings() -> RaindropSyncSettings:
    """Reload settings from environment variables.

    Useful for testing or when environment variables change at runtime.
    """
    clear_settings_cache()
    return get_settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_cache
    _settings_cache = None
