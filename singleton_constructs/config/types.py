"""Typed configuration contracts for environment-specific settings."""

from __future__ import annotations

from typing import Dict, List, NotRequired, Required, TypedDict


class EnvironmentConfig(TypedDict, total=False):
    """Strongly-typed environment configuration contract."""

    region: Required[str]
    account_id: NotRequired[str | None]

    log_retention_days: NotRequired[int]
    removal_policy: NotRequired[str]
    propagate_tags: NotRequired[bool]

    sdk_max_retries: NotRequired[int]
    sdk_base_delay_ms: NotRequired[int]

    provider_runtime: NotRequired[str]
    managed_log_groups: NotRequired[List[str]]

    tags: NotRequired[Dict[str, str]]
