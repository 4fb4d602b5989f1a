"""Derive deployment-order edges from the children of a role-like construct.

A function must not be created before the policies attached to its role
exist. The role's children are either CloudFormation resources themselves
(the role) or wrappers whose default child is one (the attached policies).
"""

from __future__ import annotations

import enum
from typing import List, Optional, Tuple

from aws_cdk import CfnResource
from constructs import IConstruct


class ChildKind(enum.Enum):
    CONCRETE = "concrete"
    COMPOSITE = "composite"
    OTHER = "other"


def classify_child(child: IConstruct) -> Tuple[ChildKind, Optional[CfnResource]]:
    """Return the kind of ``child`` and the resource it stands for, if any."""
    if CfnResource.is_cfn_resource(child):
        return ChildKind.CONCRETE, child  # type: ignore[return-value]
    default_child = child.node.default_child
    if default_child is not None and CfnResource.is_cfn_resource(default_child):
        return ChildKind.COMPOSITE, default_child  # type: ignore[return-value]
    return ChildKind.OTHER, None


def derive_dependencies(role_node: IConstruct) -> List[CfnResource]:
    """Return the resources a consumer of ``role_node`` must depend on."""
    resources: List[CfnResource] = []
    seen: set[str] = set()
    for child in role_node.node.children:
        kind, resource = classify_child(child)
        if kind is ChildKind.OTHER or resource is None:
            continue
        path = resource.node.path
        if path in seen:
            continue
        seen.add(path)
        resources.append(resource)
    return resources


def add_dependencies(consumer: CfnResource, role_node: IConstruct) -> List[CfnResource]:
    """Make ``consumer`` depend on every resource derived from ``role_node``.

    Call once all policy attachments for the consumer's role are in place.
    """
    resources = derive_dependencies(role_node)
    for resource in resources:
        consumer.node.add_dependency(resource)
    return resources
