"""Custom resource provider managing CloudWatch Logs retention.

Handles ``Custom::LogRetention`` requests from CloudFormation.

ResourceProperties (values arrive as strings):
{
  "LogGroupName": "/aws/lambda/my-function",
  "LogGroupArn": "arn:aws:logs:<region>:<account>:log-group:/aws/lambda/my-function",
  "LogGroupRegion": "eu-west-1",                   # optional
  "RetentionInDays": "14",                         # absent => never expire
  "SdkRetry": {"maxRetries": "5", "base": "200"},  # optional
  "RemovalPolicy": "retain|destroy",
  "PropagateTags": "true|false",
  "Tags": [{"Key": "team", "Value": "data"}]       # optional
}

Create/Update create the log group when missing and set (or remove) its
retention policy. Delete removes the log group only for ``destroy``.
"""

from __future__ import annotations

import json
import os
import time
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_ERROR_CODES = {"OperationAbortedException", "ThrottlingException"}
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 100
OWN_LOG_GROUP_RETENTION_DAYS = 1
RESPONSE_TIMEOUT_SECONDS = 10


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() == "true"


def _parse_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    return int(value)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for CloudWatch Logs calls."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS

    @staticmethod
    def from_properties(raw: Any) -> "RetryPolicy":
        if not isinstance(raw, dict):
            return RetryPolicy()
        max_retries = _parse_int(raw.get("maxRetries"))
        base_delay_ms = _parse_int(raw.get("base"))
        return RetryPolicy(
            max_retries=DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
            base_delay_ms=DEFAULT_BASE_DELAY_MS if base_delay_ms is None else base_delay_ms,
        )

    def call(self, func: Callable[..., T], **kwargs: Any) -> T:
        attempt = 0
        while True:
            try:
                return func(**kwargs)
            except ClientError as exc:
                if _error_code(exc) not in RETRYABLE_ERROR_CODES or attempt >= self.max_retries:
                    raise
                delay_seconds = self.base_delay_ms * (2**attempt) / 1000.0
                logger.warning(
                    f"Retrying after {_error_code(exc)}",
                    extra={"fields": {"attempt": attempt + 1, "delay_seconds": delay_seconds}},
                )
                time.sleep(delay_seconds)
                attempt += 1


@dataclass(frozen=True)
class RetentionRequest:
    """Typed view of the custom resource properties."""

    log_group_name: str
    log_group_arn: Optional[str] = None
    region: Optional[str] = None
    retention_in_days: Optional[int] = None
    removal_policy: str = "retain"
    propagate_tags: bool = False
    tags: Dict[str, str] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @staticmethod
    def from_properties(props: Dict[str, Any]) -> "RetentionRequest":
        name = str(props.get("LogGroupName") or "").strip()
        if not name:
            raise ValueError("LogGroupName is required")

        tags: Dict[str, str] = {}
        for tag in props.get("Tags") or []:
            if isinstance(tag, dict) and tag.get("Key"):
                tags[str(tag["Key"])] = str(tag.get("Value", ""))

        return RetentionRequest(
            log_group_name=name,
            log_group_arn=props.get("LogGroupArn") or None,
            region=props.get("LogGroupRegion") or None,
            retention_in_days=_parse_int(props.get("RetentionInDays")),
            removal_policy=str(props.get("RemovalPolicy") or "retain").strip().lower(),
            propagate_tags=_parse_bool(props.get("PropagateTags")),
            tags=tags,
            retry=RetryPolicy.from_properties(props.get("SdkRetry")),
        )


def logs_client(region: Optional[str] = None) -> Any:
    # retries are driven by RetryPolicy so SdkRetry is honoured exactly
    config = Config(retries={"mode": "standard", "total_max_attempts": 1})
    if region:
        return boto3.client("logs", region_name=region, config=config)
    return boto3.client("logs", config=config)


def create_log_group(client: Any, name: str, retry: RetryPolicy) -> bool:
    """Create ``name``; return False when it already exists."""
    try:
        retry.call(client.create_log_group, logGroupName=name)
    except ClientError as exc:
        if _error_code(exc) == "ResourceAlreadyExistsException":
            return False
        raise
    return True


def set_retention_policy(client: Any, name: str, retention_in_days: Optional[int], retry: RetryPolicy) -> None:
    if retention_in_days is None:
        retry.call(client.delete_retention_policy, logGroupName=name)
    else:
        retry.call(client.put_retention_policy, logGroupName=name, retentionInDays=retention_in_days)


def delete_log_group(client: Any, name: str, retry: RetryPolicy) -> bool:
    """Delete ``name``; return False when it was already gone."""
    try:
        retry.call(client.delete_log_group, logGroupName=name)
    except ClientError as exc:
        if _error_code(exc) == "ResourceNotFoundException":
            return False
        raise
    return True


def sync_tags(client: Any, log_group_arn: str, desired: Dict[str, str], retry: RetryPolicy) -> None:
    """Make the tags of ``log_group_arn`` equal ``desired``."""
    current: Dict[str, str] = retry.call(client.list_tags_for_resource, resourceArn=log_group_arn).get("tags", {})
    to_tag = {key: value for key, value in desired.items() if current.get(key) != value}
    to_untag: List[str] = [key for key in current if key not in desired]
    if to_untag:
        retry.call(client.untag_resource, resourceArn=log_group_arn, tagKeys=to_untag)
    if to_tag:
        retry.call(client.tag_resource, resourceArn=log_group_arn, tags=to_tag)


def _own_log_group_name(context: Any) -> Optional[str]:
    function_name = getattr(context, "function_name", None)
    if not function_name:
        return None
    return f"/aws/lambda/{function_name}"


def apply_retention(request: RetentionRequest, request_type: str, context: Any) -> None:
    client = logs_client(request.region)
    create_log_group(client, request.log_group_name, request.retry)
    set_retention_policy(client, request.log_group_name, request.retention_in_days, request.retry)

    own_log_group = _own_log_group_name(context)
    if request_type == "Create" and own_log_group and own_log_group != request.log_group_name:
        own_client = logs_client()
        create_log_group(own_client, own_log_group, request.retry)
        set_retention_policy(own_client, own_log_group, OWN_LOG_GROUP_RETENTION_DAYS, request.retry)

    if request.propagate_tags:
        if not request.log_group_arn:
            raise ValueError("LogGroupArn is required to propagate tags")
        sync_tags(client, request.log_group_arn, request.tags, request.retry)


def send_response(
    event: Dict[str, Any],
    context: Any,
    status: str,
    *,
    physical_resource_id: str,
    reason: str = "",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """PUT the result to the pre-signed CloudFormation response URL."""
    log_stream = getattr(context, "log_stream_name", "") or ""
    body = {
        "Status": status,
        "Reason": reason or f"See CloudWatch Logs: {log_stream}",
        "PhysicalResourceId": physical_resource_id,
        "StackId": event.get("StackId"),
        "RequestId": event.get("RequestId"),
        "LogicalResourceId": event.get("LogicalResourceId"),
        "NoEcho": False,
        "Data": data or {},
    }
    request = urllib.request.Request(
        event["ResponseURL"],
        data=json.dumps(body).encode("utf-8"),
        method="PUT",
        headers={"content-type": ""},
    )
    with urllib.request.urlopen(request, timeout=RESPONSE_TIMEOUT_SECONDS) as response:
        response.read()


def handler(event: Dict[str, Any], context: Any) -> None:
    request_type = str(event.get("RequestType", ""))
    props = event.get("ResourceProperties") or {}
    physical_id = str(
        event.get("PhysicalResourceId")
        or props.get("LogGroupName")
        or os.environ.get("AWS_LAMBDA_LOG_STREAM_NAME", "log-retention")
    )
    log_extra = {"request_id": event.get("RequestId")}

    try:
        request = RetentionRequest.from_properties(props)
        logger.info(
            f"{request_type} retention for {request.log_group_name}",
            extra={**log_extra, "fields": {"retention_in_days": request.retention_in_days}},
        )

        if request_type in ("Create", "Update"):
            apply_retention(request, request_type, context)
        elif request_type == "Delete":
            if request.removal_policy == "destroy":
                deleted = delete_log_group(logs_client(request.region), request.log_group_name, request.retry)
                logger.info(f"Deleted log group {request.log_group_name}: {deleted}", extra=log_extra)
        else:
            raise ValueError(f"Unsupported request type: {request_type!r}")

        send_response(
            event,
            context,
            "SUCCESS",
            physical_resource_id=request.log_group_name,
            data={"LogGroupName": request.log_group_name},
        )
    except Exception as exc:
        logger.exception(f"Log retention request failed: {exc}", extra=log_extra)
        send_response(event, context, "FAILED", physical_resource_id=physical_id, reason=str(exc))
