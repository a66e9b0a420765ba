"""Library configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError, MissingConfigurationError
from .links import LinkConfig
from .logging import configure_logging
from .storage import DEFAULT_DATABASE_URI, DatabaseConfig, get_database_config

__all__ = [
    "DEFAULT_DATABASE_URI",
    "ConfigurationError",
    "DatabaseConfig",
    "LinkConfig",
    "MissingConfigurationError",
    "configure_logging",
    "get_database_config",
]
