"""Stack applying retention, removal and tagging rules to platform log groups."""

from __future__ import annotations

import re
from typing import Any, List, Optional

from aws_cdk import Duration, Stack, Tags
from constructs import Construct

from singleton_constructs.config.environments import resolve_removal_policy
from singleton_constructs.config.types import EnvironmentConfig
from singleton_constructs.core.utils import dedupe
from singleton_constructs.logs import LogRetention, LogRetentionFunction, LogRetentionRetryOptions
from singleton_constructs.logs.log_retention_function import DEFAULT_PROVIDER_RUNTIME


def retention_construct_id(log_group_name: str) -> str:
    """Return a construct id derived from a log group name."""
    parts = [part for part in re.split(r"[^A-Za-z0-9]+", log_group_name) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts) + "Retention"


def retry_options_from_config(config: EnvironmentConfig) -> Optional[LogRetentionRetryOptions]:
    max_retries = config.get("sdk_max_retries")
    base_delay_ms = config.get("sdk_base_delay_ms")
    if max_retries is None and base_delay_ms is None:
        return None
    return LogRetentionRetryOptions(
        max_retries=max_retries,
        base=Duration.millis(base_delay_ms) if base_delay_ms is not None else None,
    )


class LogGovernanceStack(Stack):
    """One LogRetention per managed log group, all served by a single provider."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        config: EnvironmentConfig,
        **kwargs: Any,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.env_name = environment
        self.config = config

        removal_policy = resolve_removal_policy(config.get("removal_policy"))
        retry_options = retry_options_from_config(config)
        tags = dict(config.get("tags") or {})

        self.log_retentions: List[LogRetention] = []
        for log_group_name in dedupe(config.get("managed_log_groups", [])):
            log_retention = LogRetention(
                self,
                retention_construct_id(log_group_name),
                log_group_name=log_group_name,
                retention=config.get("log_retention_days", 30),
                removal_policy=removal_policy,
                propagate_tags=bool(config.get("propagate_tags", False)),
                log_retention_retry_options=retry_options,
                runtime=config.get("provider_runtime", DEFAULT_PROVIDER_RUNTIME),
            )
            self.log_retentions.append(log_retention)

        for key, value in tags.items():
            Tags.of(self).add(key, value)

    @property
    def provider(self) -> Optional[LogRetentionFunction]:
        """Provider function shared by the stack's LogRetentions, if any."""
        if not self.log_retentions:
            return None
        return self.log_retentions[0].provider
