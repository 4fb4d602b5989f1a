"""Runtime tests for the Custom::LogRetention provider handler."""

from __future__ import annotations

from typing import Any, Dict

import boto3
import pytest
from moto import mock_aws

from tests.fixtures.clients import BotoStub, LambdaContextStub, LogsStub, ResponseRecorder

PROVIDER_PATH = "src/lambda/providers/log_retention.py"
LOG_GROUP = "/aws/lambda/dev-ingestion-worker"
LOG_GROUP_ARN = f"arn:aws:logs:us-east-1:123456789012:log-group:{LOG_GROUP}"
OWN_LOG_GROUP = f"/aws/lambda/{LambdaContextStub.function_name}"


def _event(request_type: str = "Create", **properties: Any) -> Dict[str, Any]:
    props: Dict[str, Any] = {
        "ServiceToken": "arn:aws:lambda:us-east-1:123456789012:function:provider",
        "LogGroupName": LOG_GROUP,
        "LogGroupArn": LOG_GROUP_ARN,
        "RemovalPolicy": "retain",
        "PropagateTags": "false",
    }
    props.update(properties)
    return {
        "RequestType": request_type,
        "ResponseURL": "https://cloudformation-custom-resource-response.example/abc",
        "StackId": "arn:aws:cloudformation:us-east-1:123456789012:stack/test/1",
        "RequestId": "req-123",
        "LogicalResourceId": "MyLogRetention",
        "ResourceProperties": {key: value for key, value in props.items() if value is not None},
    }


@pytest.fixture
def provider(load_module, monkeypatch):
    """Load the handler with a stubbed logs client and response sender."""
    mod = load_module(PROVIDER_PATH)
    logs = LogsStub()
    boto = BotoStub(logs=logs)
    responses = ResponseRecorder()
    module_globals = mod["handler"].__globals__
    monkeypatch.setitem(module_globals, "boto3", boto)
    monkeypatch.setitem(module_globals, "send_response", responses)
    monkeypatch.setitem(module_globals, "time", _NoSleep())
    return {"mod": mod, "logs": logs, "boto": boto, "responses": responses}


class _NoSleep:
    def __init__(self) -> None:
        self.delays: list = []

    def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)


def test_create_sets_retention_and_own_log_group(provider) -> None:
    """
    Given: 14일 보존 기간의 Create 요청
    When: 핸들러를 실행하면
    Then: 로그 그룹 생성/보존 설정 후 자신의 로그 그룹은 1일 보존으로 설정되어야 함
    """
    provider["mod"]["handler"](_event(RetentionInDays="14"), LambdaContextStub())

    logs = provider["logs"]
    assert logs.groups[LOG_GROUP] == {"retentionInDays": 14}
    assert logs.groups[OWN_LOG_GROUP] == {"retentionInDays": 1}
    assert provider["responses"].last["status"] == "SUCCESS"
    assert provider["responses"].last["physical_resource_id"] == LOG_GROUP
    assert provider["responses"].last["data"] == {"LogGroupName": LOG_GROUP}


def test_update_skips_own_log_group(provider) -> None:
    provider["mod"]["handler"](_event("Update", RetentionInDays="30"), LambdaContextStub())

    assert OWN_LOG_GROUP not in provider["logs"].groups
    assert provider["logs"].groups[LOG_GROUP] == {"retentionInDays": 30}


def test_missing_retention_removes_policy(provider) -> None:
    """
    Given: RetentionInDays가 없는 요청 (무기한 보존)
    When: 기존 로그 그룹에 대해 Update를 실행하면
    Then: 보존 정책이 삭제되어야 함
    """
    logs = provider["logs"]
    logs.groups[LOG_GROUP] = {"retentionInDays": 7}

    provider["mod"]["handler"](_event("Update"), LambdaContextStub())

    assert "retentionInDays" not in logs.groups[LOG_GROUP]
    assert "delete_retention_policy" in logs.calls
    assert provider["responses"].last["status"] == "SUCCESS"


def test_log_group_region_selects_client_region(provider) -> None:
    provider["mod"]["handler"](_event("Update", RetentionInDays="1", LogGroupRegion="eu-west-1"), LambdaContextStub())

    assert provider["boto"].regions == ["eu-west-1"]


def test_tags_are_synchronised_when_propagating(provider) -> None:
    """
    Given: PropagateTags=true와 원하는 태그 목록, 로그 그룹의 기존 태그
    When: Update를 실행하면
    Then: 불필요한 태그는 제거되고 원하는 태그만 남아야 함
    """
    logs = provider["logs"]
    logs.tags[LOG_GROUP_ARN] = {"stale": "x", "team": "old"}

    provider["mod"]["handler"](
        _event(
            "Update",
            RetentionInDays="7",
            PropagateTags="true",
            Tags=[{"Key": "team", "Value": "platform"}, {"Key": "env", "Value": "dev"}],
        ),
        LambdaContextStub(),
    )

    assert logs.tags[LOG_GROUP_ARN] == {"team": "platform", "env": "dev"}
    assert provider["responses"].last["status"] == "SUCCESS"


def test_tags_untouched_without_propagation(provider) -> None:
    provider["mod"]["handler"](
        _event("Update", RetentionInDays="7", Tags=[{"Key": "team", "Value": "platform"}]),
        LambdaContextStub(),
    )

    assert "tag_resource" not in provider["logs"].calls


@pytest.mark.parametrize("removal_policy, expected_exists", [("destroy", False), ("retain", True)])
def test_delete_honours_removal_policy(provider, removal_policy, expected_exists) -> None:
    """
    Given: 존재하는 로그 그룹과 RemovalPolicy
    When: Delete 요청을 처리하면
    Then: destroy일 때만 로그 그룹이 삭제되어야 함
    """
    logs = provider["logs"]
    logs.groups[LOG_GROUP] = {"retentionInDays": 7}
    event = _event("Delete", RemovalPolicy=removal_policy)
    event["PhysicalResourceId"] = LOG_GROUP

    provider["mod"]["handler"](event, LambdaContextStub())

    assert (LOG_GROUP in logs.groups) is expected_exists
    assert provider["responses"].last["status"] == "SUCCESS"


def test_delete_of_missing_log_group_succeeds(provider) -> None:
    provider["mod"]["handler"](_event("Delete", RemovalPolicy="destroy"), LambdaContextStub())

    assert provider["responses"].last["status"] == "SUCCESS"


def test_throttling_is_retried_with_backoff(load_module, monkeypatch) -> None:
    """
    Given: 두 번 스로틀링된 뒤 성공하는 PutRetentionPolicy
    When: SdkRetry(base=200ms)로 Create를 실행하면
    Then: 200ms, 400ms 대기 후 성공해야 함
    """
    mod = load_module(PROVIDER_PATH)
    logs = LogsStub(failures={"put_retention_policy": ["ThrottlingException", "OperationAbortedException"]})
    sleeper = _NoSleep()
    responses = ResponseRecorder()
    module_globals = mod["handler"].__globals__
    monkeypatch.setitem(module_globals, "boto3", BotoStub(logs=logs))
    monkeypatch.setitem(module_globals, "send_response", responses)
    monkeypatch.setitem(module_globals, "time", sleeper)

    mod["handler"](
        _event("Update", RetentionInDays="3", SdkRetry={"maxRetries": "5", "base": "200"}),
        LambdaContextStub(),
    )

    assert sleeper.delays == [0.2, 0.4]
    assert logs.groups[LOG_GROUP] == {"retentionInDays": 3}
    assert responses.last["status"] == "SUCCESS"


def test_retries_are_bounded(load_module, monkeypatch) -> None:
    mod = load_module(PROVIDER_PATH)
    logs = LogsStub(failures={"put_retention_policy": ["ThrottlingException"] * 3})
    responses = ResponseRecorder()
    module_globals = mod["handler"].__globals__
    monkeypatch.setitem(module_globals, "boto3", BotoStub(logs=logs))
    monkeypatch.setitem(module_globals, "send_response", responses)
    monkeypatch.setitem(module_globals, "time", _NoSleep())

    mod["handler"](_event("Update", RetentionInDays="3", SdkRetry={"maxRetries": "1"}), LambdaContextStub())

    assert logs.calls.count("put_retention_policy") == 2
    assert responses.last["status"] == "FAILED"
    assert "ThrottlingException" in responses.last["reason"]


def test_missing_log_group_name_fails(provider) -> None:
    """
    Given: LogGroupName이 없는 요청
    When: 핸들러를 실행하면
    Then: FAILED 응답과 함께 사유가 전달되어야 함
    """
    event = _event(LogGroupName=None)
    event["PhysicalResourceId"] = "previous-id"

    provider["mod"]["handler"](event, LambdaContextStub())

    last = provider["responses"].last
    assert last["status"] == "FAILED"
    assert last["physical_resource_id"] == "previous-id"
    assert "LogGroupName" in last["reason"]


def test_unknown_request_type_fails(provider) -> None:
    provider["mod"]["handler"](_event("Rollback"), LambdaContextStub())

    assert provider["responses"].last["status"] == "FAILED"
    assert provider["responses"].last["physical_resource_id"] == LOG_GROUP


def test_retention_request_parses_string_properties(load_module) -> None:
    mod = load_module(PROVIDER_PATH)
    request = mod["RetentionRequest"].from_properties(
        {
            "LogGroupName": " group ",
            "RetentionInDays": "90",
            "RemovalPolicy": "DESTROY",
            "PropagateTags": "True",
            "Tags": [{"Key": "a", "Value": "1"}, {"Value": "ignored"}],
            "SdkRetry": {"base": "50"},
        }
    )

    assert request.log_group_name == "group"
    assert request.retention_in_days == 90
    assert request.removal_policy == "destroy"
    assert request.propagate_tags is True
    assert request.tags == {"a": "1"}
    assert request.retry.max_retries == mod["DEFAULT_MAX_RETRIES"]
    assert request.retry.base_delay_ms == 50


def test_create_against_moto_logs(load_module, monkeypatch) -> None:
    """
    Given: moto로 모킹된 CloudWatch Logs
    When: Create 요청을 처리하면
    Then: 실제 API 호출 결과로 로그 그룹과 보존 기간이 설정되어야 함
    """
    with mock_aws():
        mod = load_module(PROVIDER_PATH)
        responses = ResponseRecorder()
        monkeypatch.setitem(mod["handler"].__globals__, "send_response", responses)

        mod["handler"](_event(RetentionInDays="60"), LambdaContextStub())

        client = boto3.client("logs", region_name="us-east-1")
        groups = {
            group["logGroupName"]: group.get("retentionInDays")
            for group in client.describe_log_groups()["logGroups"]
        }

    assert groups[LOG_GROUP] == 60
    assert groups[OWN_LOG_GROUP] == 1
    assert responses.last["status"] == "SUCCESS"
