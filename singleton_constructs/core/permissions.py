"""Deduplicating grant accumulator attached to a shared IAM role."""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from aws_cdk import aws_iam as iam

from .errors import ConfigurationError
from .utils import dedupe

logger = logging.getLogger(__name__)

StatementKey = Tuple[FrozenSet[str], FrozenSet[str]]


class PermissionAccumulator:
    """Collect allow statements for a role, adding each distinct statement once.

    Two grants are the same statement when their action sets and resource sets
    are equal, regardless of order or of which construct asked for them.
    """

    def __init__(self, role: iam.IRole) -> None:
        self._role = role
        self._statements: Dict[StatementKey, iam.PolicyStatement] = {}

    @property
    def role(self) -> iam.IRole:
        return self._role

    @property
    def statements(self) -> Tuple[iam.PolicyStatement, ...]:
        """Accumulated statements in insertion order."""
        return tuple(self._statements.values())

    def grant(self, actions: Iterable[str], resources: Iterable[str]) -> bool:
        """Allow ``actions`` on ``resources``.

        Returns ``True`` when a new statement was added, ``False`` when an
        identical statement already exists.
        """
        action_list = dedupe(actions)
        resource_list = dedupe(resources)
        if not action_list:
            raise ConfigurationError("At least one action is required")
        if not resource_list:
            raise ConfigurationError("At least one resource is required")

        key: StatementKey = (frozenset(action_list), frozenset(resource_list))
        if key in self._statements:
            logger.debug("Skipping duplicate grant of %s", ", ".join(action_list))
            return False

        statement = iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            actions=action_list,
            resources=resource_list,
        )
        self._statements[key] = statement
        self._role.add_to_principal_policy(statement)
        logger.debug("Granted %s", ", ".join(action_list))
        return True

    def render(self) -> List[Dict[str, Any]]:
        """Return the accumulated statements as IAM statement JSON."""
        return [statement.to_statement_json() for statement in self._statements.values()]

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        actions, resources = item
        return (frozenset(actions), frozenset(resources)) in self._statements

    def __len__(self) -> int:
        return len(self._statements)
