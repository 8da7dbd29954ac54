# Configuration module for the session bridge
from .settings import (
    ConfigurationError,
    Environment,
    Settings,
    clear_settings_cache,
    get_settings,
    validate_startup,
)

__all__ = [
    "ConfigurationError",
    "Environment",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "validate_startup",
]
