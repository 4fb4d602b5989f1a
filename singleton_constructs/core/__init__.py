"""Building blocks shared by the singleton-backed constructs."""

from . import utils  # noqa: F401
from .dependencies import ChildKind, add_dependencies, classify_child, derive_dependencies
from .errors import ConfigurationError, ReentrantCreationError, RegistryError
from .permissions import PermissionAccumulator
from .registry import get_or_create, singleton_scope

__all__ = [
    "utils",
    "ChildKind",
    "add_dependencies",
    "classify_child",
    "derive_dependencies",
    "ConfigurationError",
    "ReentrantCreationError",
    "RegistryError",
    "PermissionAccumulator",
    "get_or_create",
    "singleton_scope",
]
