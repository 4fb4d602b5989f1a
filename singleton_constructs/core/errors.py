"""Error types raised while building the construct tree."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when construct options are invalid."""


class RegistryError(RuntimeError):
    """Raised when a singleton key cannot be resolved to a usable construct."""


class ReentrantCreationError(RegistryError):
    """Raised when a factory asks for the key it is currently creating."""
