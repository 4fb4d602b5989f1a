"""LogRetention construct and the descriptor it submits to CloudFormation.

A ``LogRetention`` manages the retention policy of a CloudWatch Logs log group
through a ``Custom::LogRetention`` resource. The log group is created if it
does not exist yet, and its retention policy is removed when the retention is
``RetentionDays.INFINITE``. Every LogRetention of a stack is served by the
same provider function.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import jsii
from aws_cdk import CfnResource, Duration, ITaggable, RemovalPolicy, Stack, TagManager, TagType, aws_iam as iam
from constructs import Construct
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from singleton_constructs.core.errors import ConfigurationError
from singleton_constructs.core.registry import get_or_create, singleton_scope
from singleton_constructs.core.utils import is_token, log_group_arns

from .log_retention_function import DEFAULT_PROVIDER_RUNTIME, LogRetentionFunction

PROVIDER_ID = "LogRetentionaae0aa3c5b4d4f87b02d85b201efdd8a"
RESOURCE_TYPE = "Custom::LogRetention"

LOG_GROUP_NAME_PATTERN = re.compile(r"^[\.\-_/#A-Za-z0-9]{1,512}$")


class RetentionDays(enum.IntEnum):
    """Retention periods accepted by CloudWatch Logs."""

    ONE_DAY = 1
    THREE_DAYS = 3
    FIVE_DAYS = 5
    ONE_WEEK = 7
    TWO_WEEKS = 14
    ONE_MONTH = 30
    TWO_MONTHS = 60
    THREE_MONTHS = 90
    FOUR_MONTHS = 120
    FIVE_MONTHS = 150
    SIX_MONTHS = 180
    ONE_YEAR = 365
    THIRTEEN_MONTHS = 400
    EIGHTEEN_MONTHS = 545
    TWO_YEARS = 731
    THREE_YEARS = 1096
    FIVE_YEARS = 1827
    SIX_YEARS = 2192
    SEVEN_YEARS = 2557
    EIGHT_YEARS = 2922
    NINE_YEARS = 3288
    TEN_YEARS = 3653
    INFINITE = 9999


class LogRetentionRetryOptions(BaseModel):
    """Retry options for the AWS API calls made by the provider function.

    Attributes:
        max_retries: Maximum number of retries. AWS SDK default (3) when unset.
        base: Base delay of the exponential backoff. AWS SDK default (100 ms)
            when unset.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    max_retries: Optional[int] = Field(default=None, ge=0)
    base: Optional[Duration] = None

    def to_sdk_retry(self) -> Dict[str, int]:
        sdk_retry: Dict[str, int] = {}
        if self.max_retries is not None:
            sdk_retry["maxRetries"] = self.max_retries
        if self.base is not None:
            sdk_retry["base"] = int(self.base.to_milliseconds())
        return sdk_retry


class LogRetentionProps(BaseModel):
    """Every LogRetention option with its default.

    Attributes:
        log_group_name: Name of the managed log group.
        retention: Days log events are kept; ``RetentionDays.INFINITE`` removes
            the retention policy.
        log_group_region: Region of the log group. Defaults to the stack region.
        role: IAM role for the provider function. A new role is created when
            unset. Only the first LogRetention of a stack decides the role.
        log_retention_retry_options: Retry options for the provider's API calls.
        removal_policy: ``RETAIN`` keeps the log group when the resource is
            deleted, ``DESTROY`` deletes it.
        propagate_tags: Also apply this construct's tags to the log group.
        runtime: Lambda runtime of the provider function.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    log_group_name: str
    retention: RetentionDays
    log_group_region: Optional[str] = None
    role: Optional[iam.IRole] = None
    log_retention_retry_options: Optional[LogRetentionRetryOptions] = None
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    propagate_tags: bool = False
    runtime: str = DEFAULT_PROVIDER_RUNTIME

    @field_validator("log_group_name")
    @classmethod
    def _check_log_group_name(cls, value: str) -> str:
        if is_token(value):
            return value
        if not LOG_GROUP_NAME_PATTERN.match(value):
            raise ValueError(f"Invalid log group name: {value!r}")
        return value

    @field_validator("role", mode="plain")
    @classmethod
    def _check_role(cls, value: Any) -> Optional[iam.IRole]:
        # jsii interfaces are not runtime checkable, so check the members used
        if value is None:
            return None
        if not callable(getattr(value, "add_to_principal_policy", None)) or not hasattr(value, "role_arn"):
            raise ValueError(f"role must be an IAM role, got {type(value).__name__}")
        return value

    @field_validator("removal_policy")
    @classmethod
    def _check_removal_policy(cls, value: RemovalPolicy) -> RemovalPolicy:
        if value not in (RemovalPolicy.RETAIN, RemovalPolicy.DESTROY):
            raise ValueError("removal_policy must be RETAIN or DESTROY")
        return value

    @classmethod
    def create(cls, **options: Any) -> "LogRetentionProps":
        """Validate ``options``, raising ConfigurationError on bad input."""
        try:
            return cls(**options)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc


@dataclass(frozen=True)
class LogRetentionDescriptor:
    """Properties of one ``Custom::LogRetention`` resource."""

    service_token: Any
    log_group_name: str
    log_group_arn: str
    removal_policy: str
    propagate_tags: bool
    log_group_region: Optional[str] = None
    sdk_retry: Optional[Mapping[str, int]] = None
    retention_in_days: Optional[int] = None
    tags: Any = None

    def to_properties(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {
            "ServiceToken": self.service_token,
            "LogGroupName": self.log_group_name,
            "LogGroupArn": self.log_group_arn,
        }
        if self.log_group_region is not None:
            properties["LogGroupRegion"] = self.log_group_region
        if self.sdk_retry is not None:
            properties["SdkRetry"] = dict(self.sdk_retry)
        if self.retention_in_days is not None:
            properties["RetentionInDays"] = self.retention_in_days
        properties["RemovalPolicy"] = self.removal_policy
        properties["PropagateTags"] = self.propagate_tags
        if self.tags is not None:
            properties["Tags"] = self.tags
        return properties


def build_descriptor(
    props: LogRetentionProps,
    *,
    service_token: Any,
    log_group_base_arn: str,
    tags: Any = None,
) -> LogRetentionDescriptor:
    """Assemble the custom resource properties for ``props``."""
    retry = props.log_retention_retry_options
    retention = None if props.retention == RetentionDays.INFINITE else int(props.retention)
    return LogRetentionDescriptor(
        service_token=service_token,
        log_group_name=props.log_group_name,
        log_group_arn=log_group_base_arn,
        log_group_region=props.log_group_region,
        sdk_retry=retry.to_sdk_retry() if retry is not None else None,
        retention_in_days=retention,
        removal_policy=props.removal_policy.name.lower(),
        propagate_tags=props.propagate_tags,
        tags=tags,
    )


@jsii.implements(ITaggable)
class LogRetention(Construct):
    """Control the retention policy of a CloudWatch Logs log group."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        log_group_name: str,
        retention: RetentionDays | int,
        log_group_region: Optional[str] = None,
        role: Optional[iam.IRole] = None,
        log_retention_retry_options: Optional[LogRetentionRetryOptions] = None,
        removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
        propagate_tags: bool = False,
        runtime: str = DEFAULT_PROVIDER_RUNTIME,
    ) -> None:
        # validated before anything is added to the tree
        props = LogRetentionProps.create(
            log_group_name=log_group_name,
            retention=retention,
            log_group_region=log_group_region,
            role=role,
            log_retention_retry_options=log_retention_retry_options,
            removal_policy=removal_policy,
            propagate_tags=propagate_tags,
            runtime=runtime,
        )
        super().__init__(scope, construct_id)
        self._props = props
        self._tags = TagManager(TagType.KEY_VALUE, "AWS::Logs::LogGroup")

        provider = self._ensure_provider()

        self._log_group_base_arn, self._log_group_arn = log_group_arns(
            Stack.of(self), props.log_group_name, props.log_group_region
        )

        if props.removal_policy == RemovalPolicy.DESTROY:
            provider.grant_delete_log_group(self._log_group_arn)

        if props.propagate_tags:
            provider.grant_propagate_tags_to_log_group(self._log_group_base_arn)

        self._descriptor = build_descriptor(
            props,
            service_token=provider.function_arn,
            log_group_base_arn=self._log_group_base_arn,
            tags=self._tags.rendered_tags,
        )
        self._resource = CfnResource(
            self,
            "Resource",
            type=RESOURCE_TYPE,
            properties=self._descriptor.to_properties(),
        )
        self._provider = provider

    def _ensure_provider(self) -> LogRetentionFunction:
        props = self._props
        return get_or_create(
            singleton_scope(self),
            PROVIDER_ID,
            lambda scope, key: LogRetentionFunction(scope, key, role=props.role, runtime=props.runtime),
            expected_type=LogRetentionFunction,
        )

    @property
    def tags(self) -> TagManager:
        return self._tags

    @property
    def log_group_arn(self) -> str:
        """ARN of the log group, ending in ``:*`` like CloudFormation reports it."""
        return self._log_group_arn

    @property
    def log_group_base_arn(self) -> str:
        return self._log_group_base_arn

    @property
    def provider(self) -> LogRetentionFunction:
        return self._provider

    @property
    def descriptor(self) -> LogRetentionDescriptor:
        return self._descriptor

    @property
    def resource(self) -> CfnResource:
        return self._resource
