"""Reusable helpers for ARN formatting and IAM resource lists."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from aws_cdk import ArnFormat, Stack, Token

NAMESPACE_SUFFIX = ":*"


def dedupe(values: Iterable[str]) -> list[str]:
    """Return items without duplicates while preserving order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def is_token(value: object) -> bool:
    """Return True when ``value`` is resolved only at deploy time."""
    return isinstance(value, str) and Token.is_unresolved(value)


def log_group_arns(stack: Stack, log_group_name: str, region: Optional[str] = None) -> Tuple[str, str]:
    """Return the base ARN and the namespace ARN of a log group.

    The base form ``arn:<partition>:logs:<region>:<account>:log-group:<name>`` is
    what the CloudWatch Logs tagging API addresses. The namespace form appends
    ``:*`` the same way CloudFormation reports ``AWS::Logs::LogGroup`` ARNs.
    """
    base_arn = stack.format_arn(
        region=region,
        service="logs",
        resource="log-group",
        resource_name=log_group_name,
        arn_format=ArnFormat.COLON_RESOURCE_NAME,
    )
    return base_arn, base_arn + NAMESPACE_SUFFIX
