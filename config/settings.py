"""
Configuration for the location service.

Values come from environment variables, layered over ``.env`` and then
``.env.<ENVIRONMENT>``. DATABASE_URL and PORT have no defaults: if either
is missing or unusable the process refuses to start.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

logger = logging.getLogger(__name__)

SQLITE_ASYNC_DRIVER = "sqlite+aiosqlite"
LOG_LEVELS = ("CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def current(cls) -> "Environment":
        """The ENVIRONMENT variable, or development if unset or unknown."""
        raw = os.environ.get("ENVIRONMENT", "").strip().lower()
        try:
            return cls(raw)
        except ValueError:
            return cls.DEVELOPMENT

    @property
    def env_files(self) -> Tuple[str, str]:
        """Dotenv files in load order; the later file wins."""
        return (".env", f".env.{self.value}")


def normalize_database_url(url: str) -> str:
    """
    Point SQLite URLs at the async driver.

    ``sqlite:///x.db`` and ``sqlite://`` gain the ``+aiosqlite`` driver and
    the short ``sqlite:x.db`` form becomes ``sqlite+aiosqlite:///x.db``.
    Anything else is returned stripped but otherwise untouched.
    """
    url = url.strip()
    scheme, sep, rest = url.partition(":")
    if scheme != "sqlite" or not sep:
        return url
    if rest.startswith("//"):
        return f"{SQLITE_ASYNC_DRIVER}:{rest}"
    return f"{SQLITE_ASYNC_DRIVER}:///{rest}"


class Settings(BaseSettings):
    """Validated service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT

    database_url: str = Field(..., description="SQLAlchemy URL of the location store")
    store_check_timeout: float = Field(
        default=5.0, gt=0, le=60,
        description="Seconds the readiness probe waits for the store"
    )

    host: str = "0.0.0.0"
    port: int = Field(..., ge=1, le=65535, description="HTTP listen port")

    log_level: str = "INFO"
    otel_endpoint: Optional[str] = Field(
        default=None, description="OTLP collector endpoint; tracing is off without it"
    )
    otel_service_name: str = "location-service"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("database_url cannot be empty")
        v = normalize_database_url(v)
        try:
            make_url(v)
        except ArgumentError as e:
            raise ValueError(f"database_url is not a valid database URL: {e}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level


class ConfigurationError(Exception):
    """
    Settings could not be loaded or are unusable.

    Attributes:
        missing_fields: Required settings that were not provided
        invalid_fields: Setting name to the reason its value was rejected
    """

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[Dict[str, str]] = None):
        self.message = message
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = dict(invalid_fields or {})

        lines = [message]
        if self.missing_fields:
            lines.append(f"Missing required fields: {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            lines.append("Invalid field values:")
            lines.extend(f"  - {name}: {reason}" for name, reason in self.invalid_fields.items())
        super().__init__("\n".join(lines))

    @classmethod
    def from_validation_error(cls, message: str, error: ValidationError) -> "ConfigurationError":
        missing, invalid = [], {}
        for item in error.errors():
            name = ".".join(str(part) for part in item.get("loc", ()))
            if item.get("type") == "missing":
                missing.append(name)
            else:
                invalid[name] = item.get("msg", "invalid value")
        return cls(message, missing_fields=missing, invalid_fields=invalid)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Load settings using the dotenv files of ``environment``.

    Args:
        environment: Which ``.env.<environment>`` to layer; defaults to ENVIRONMENT

    Raises:
        ConfigurationError: If a required setting is missing or a value is invalid
    """
    environment = environment or Environment.current()
    try:
        # dotenv files that do not exist are skipped
        return Settings(_env_file=environment.env_files)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(
            f"Failed to load configuration for environment '{environment.value}'", e
        ) from e


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """Load settings once per process; later calls return the same object."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()
    return _settings_cache


def clear_settings_cache() -> None:
    global _settings_cache
    _settings_cache = None


def validate_startup(settings: Optional[Settings] = None) -> None:
    """
    Check settings that field validation alone cannot.

    SQLite creates the database file on first connect but not its parent
    directories, so a file-backed database in a missing directory is
    rejected here, before the server binds its port.

    Raises:
        ConfigurationError: If the store cannot possibly be opened
    """
    settings = settings or get_settings()

    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        directory = Path(url.database).expanduser().resolve().parent
        if not directory.is_dir():
            raise ConfigurationError(
                "Configuration validation failed during startup",
                invalid_fields={
                    "database_url": f"Directory for SQLite database does not exist: {directory}"
                },
            )

    environment = Environment.current()
    logger.debug(
        "Startup configuration validated",
        extra={"extra_data": {
            "environment": environment.value,
            "env_files_loaded": [f for f in environment.env_files if Path(f).exists()],
            "store_backend": url.get_backend_name(),
        }}
    )
