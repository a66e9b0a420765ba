"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a reconciler or adapter is configured or attached incorrectly."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required setting is absent or blank."""
