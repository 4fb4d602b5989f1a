"""Scope-keyed singleton lookup for shared provider constructs.

A provider (for example the Lambda function behind a custom resource) must be
created at most once per scope no matter how many constructs request it. The
construct tree already keeps a map of child ids per node, so the registry
queries that map before invoking the factory and reserves the key while the
factory runs.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Set, Tuple, Type, TypeVar

from aws_cdk import Stack
from constructs import Construct, IConstruct

from .errors import ReentrantCreationError, RegistryError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=IConstruct)

# (id(scope), key) pairs whose factory is currently running
_reserved: Set[Tuple[int, str]] = set()


def singleton_scope(construct: IConstruct) -> Stack:
    """Return the scope stack-wide singletons are registered in."""
    return Stack.of(construct)


def get_or_create(
    scope: Construct,
    key: str,
    factory: Callable[[Construct, str], T],
    *,
    expected_type: Optional[Type[T]] = None,
) -> T:
    """Return the child of ``scope`` registered under ``key``, creating it once.

    Args:
        scope: Construct owning the singleton.
        key: Construct id the singleton is registered under.
        factory: Called as ``factory(scope, key)`` when no child exists yet. It must
            create the child with exactly that scope and id.
        expected_type: Optional type the existing child must have.

    Raises:
        ReentrantCreationError: ``factory`` asked for the same key again.
        RegistryError: ``key`` is taken by a foreign construct or the factory did
            not register a child under it.
    """
    if not key:
        raise RegistryError("Singleton key must be a non-empty string")

    reservation = (id(scope), key)
    if reservation in _reserved:
        raise ReentrantCreationError(f"Singleton '{key}' requested while it is being created in '{scope.node.path}'")

    existing = scope.node.try_find_child(key)
    if existing is not None:
        if expected_type is not None and not isinstance(existing, expected_type):
            raise RegistryError(
                f"Construct '{existing.node.path}' is a {type(existing).__name__}, "
                f"expected {expected_type.__name__}"
            )
        logger.debug("Reusing singleton %s", existing.node.path)
        return existing  # type: ignore[return-value]

    _reserved.add(reservation)
    try:
        created = factory(scope, key)
    except Exception:
        # drop whatever the factory managed to attach before failing
        scope.node.try_remove_child(key)
        raise
    finally:
        _reserved.discard(reservation)

    if scope.node.try_find_child(key) is None:
        raise RegistryError(f"Factory for '{key}' did not register a child in '{scope.node.path}'")

    logger.debug("Created singleton %s", created.node.path)
    return created
