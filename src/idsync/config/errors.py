"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """The configuration file or its environment overlay is unreadable or invalid."""


class MissingConfigurationError(ConfigurationError):
    """A required setting or environment variable is absent or blank."""
