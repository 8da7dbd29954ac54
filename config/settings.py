"""
Configuration management for the session bridge.

This module provides centralized configuration loading and validation using
Pydantic settings. Values are loaded from environment variables or .env files,
with an optional environment-specific file layered on top.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Optional, List, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from session.cookie import SameSite


# RFC 6265 cookie-name token characters
_COOKIE_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Connection scheme aliases accepted in REDIS_SCHEME
_REDIS_SCHEMES = {
    "tcp": "redis",
    "redis": "redis",
    "tls": "rediss",
    "rediss": "rediss",
}


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _detect_environment() -> Environment:
    """
    Detect the current environment from the ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    The base .env file is loaded first, then the environment-specific file,
    so later files override earlier ones.
    """
    return (".env", f".env.{environment.value}")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field has a working default for local development against a Redis
    on 127.0.0.1:6379. The ENVIRONMENT variable determines which additional
    .env file is loaded by create_settings_for_environment().
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Session Store Configuration
    session_store_type: str = Field(
        default="redis",
        description="Session store type: 'redis' or 'memory'"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Full Redis connection URL; overrides scheme/host/port/db"
    )
    redis_scheme: str = Field(
        default="tcp",
        description="Redis connection scheme: 'tcp' or 'tls'"
    )
    redis_host: str = Field(
        default="127.0.0.1",
        description="Redis host"
    )
    redis_port: int = Field(
        default=6379,
        ge=1,
        le=65535,
        description="Redis port"
    )
    redis_db: int = Field(
        default=0,
        ge=0,
        description="Redis logical database index"
    )

    # Session Lifecycle Configuration
    session_lifetime_seconds: int = Field(
        default=3600,
        ge=1,
        description="Sliding session lifetime in seconds, applied as the store TTL on every write"
    )
    session_gc_probability: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Probability that starting a session invokes the garbage-collection hook"
    )
    session_auto_start: bool = Field(
        default=False,
        description="Start a session for every request in the middleware"
    )
    fail_request_on_save_error: bool = Field(
        default=True,
        description="Replace the response with a 503 when the end-of-request save fails"
    )
    strict_session_state: Optional[bool] = Field(
        default=None,
        description="Raise on lifecycle misuse; defaults to True outside production"
    )

    # Session Cookie Configuration
    session_cookie_name: str = Field(
        default="session_id",
        description="Name of the session cookie"
    )
    session_cookie_path: str = Field(
        default="/",
        description="Path attribute of the session cookie"
    )
    session_cookie_domain: Optional[str] = Field(
        default=None,
        description="Domain attribute of the session cookie"
    )
    session_cookie_secure: bool = Field(
        default=False,
        description="Emit the Secure flag on the session cookie"
    )
    session_cookie_httponly: bool = Field(
        default=True,
        description="Emit the HttpOnly flag on the session cookie"
    )
    session_cookie_lifetime: int = Field(
        default=0,
        ge=0,
        description="Cookie Max-Age in seconds; 0 keeps it a browser-session cookie"
    )
    session_same_site: SameSite = Field(
        default=SameSite.LAX,
        description="Default SameSite restriction applied to the session cookie"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @field_validator("session_store_type")
    @classmethod
    def validate_session_store_type(cls, v: str) -> str:
        """Validate that session_store_type is either 'redis' or 'memory'."""
        v = v.strip().lower()
        if v not in {"redis", "memory"}:
            raise ValueError("session_store_type must be 'redis' or 'memory'")
        return v

    @field_validator("redis_scheme")
    @classmethod
    def validate_redis_scheme(cls, v: str) -> str:
        """Normalize the connection scheme to a redis URL scheme."""
        scheme = _REDIS_SCHEMES.get(v.strip().lower())
        if scheme is None:
            raise ValueError("redis_scheme must be one of: tcp, tls, redis, rediss")
        return scheme

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that redis_url uses a redis:// or rediss:// scheme."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not (v.startswith("redis://") or v.startswith("rediss://") or v.startswith("unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    @field_validator("session_cookie_name")
    @classmethod
    def validate_session_cookie_name(cls, v: str) -> str:
        """Validate that the cookie name is a valid RFC 6265 token."""
        v = v.strip()
        if not _COOKIE_NAME_PATTERN.match(v):
            raise ValueError("session_cookie_name must be a non-empty cookie token")
        return v

    @field_validator("session_same_site", mode="before")
    @classmethod
    def validate_session_same_site(cls, v):
        """Accept SameSite values case-insensitively."""
        if isinstance(v, str):
            return SameSite.parse(v)
        return v

    @model_validator(mode="after")
    def validate_session_store_config(self) -> "Settings":
        """The in-memory store is process-local and not allowed in production."""
        if self.session_store_type == "memory" and self.environment == Environment.PRODUCTION:
            raise ValueError(
                "session_store_type 'memory' is not allowed in production; use 'redis'"
            )
        return self

    @property
    def effective_redis_url(self) -> str:
        """The Redis URL to connect to, built from its parts unless redis_url is set."""
        if self.redis_url:
            return self.redis_url
        return f"{self.redis_scheme}://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def raise_on_invalid_state(self) -> bool:
        """Whether lifecycle misuse raises (True) or is only logged (False)."""
        if self.strict_session_state is not None:
            return self.strict_session_state
        return self.environment != Environment.PRODUCTION


class ConfigurationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Create Settings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected from
                    the ENVIRONMENT variable.

    Returns:
        Settings: Validated settings for the specified environment.

    Raises:
        ConfigurationError: If settings are invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = tuple(f for f in _get_env_files(environment) if Path(f).exists())

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=env_files or None,
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings()
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        if hasattr(e, "errors"):
            for error in e.errors():
                field_name = ".".join(str(loc) for loc in error.get("loc", []))
                if error.get("type", "") == "missing":
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name or "settings"] = error.get("msg", str(error))

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If settings are invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None


def validate_startup(settings: Optional[Settings] = None) -> None:
    """
    Validate cross-field settings at application startup.

    Browsers reject a SameSite=None cookie without the Secure flag, so
    production refuses to start with that combination.

    Raises:
        ConfigurationError: If the settings cannot work in this environment.
    """
    settings = settings or get_settings()

    validation_errors = {}

    if (
        settings.environment == Environment.PRODUCTION
        and settings.session_same_site == SameSite.NONE
        and not settings.session_cookie_secure
    ):
        validation_errors["session_cookie_secure"] = (
            "SameSite=None requires session_cookie_secure=true in production"
        )

    if settings.session_cookie_lifetime and settings.session_cookie_lifetime > settings.session_lifetime_seconds:
        validation_errors["session_cookie_lifetime"] = (
            "Cookie lifetime exceeds session_lifetime_seconds; the cookie would outlive its data"
        )

    if validation_errors:
        raise ConfigurationError(
            "Configuration validation failed during startup",
            invalid_fields=validation_errors
        )
