"""Provider Lambda function behind the ``Custom::LogRetention`` resource."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import jsii
from aws_cdk import CfnResource, ITaggable, Reference, TagManager, TagType, aws_iam as iam
from aws_cdk import aws_s3_assets as s3_assets
from constructs import Construct

from singleton_constructs.core.dependencies import add_dependencies
from singleton_constructs.core.permissions import PermissionAccumulator

PROVIDERS_DIR = Path(__file__).resolve().parents[2] / "src" / "lambda" / "providers"
DEFAULT_PROVIDER_RUNTIME = "python3.12"
HANDLER = "log_retention.handler"

RETENTION_ACTIONS = ["logs:PutRetentionPolicy", "logs:DeleteRetentionPolicy"]
DELETE_LOG_GROUP_ACTIONS = ["logs:DeleteLogGroup"]
TAG_PROPAGATION_ACTIONS = ["logs:ListTagsForResource", "logs:TagResource", "logs:UntagResource"]


@jsii.implements(ITaggable)
class LogRetentionFunction(Construct):
    """Lambda function shared by every LogRetention of a stack.

    Not meant to be created directly; ``LogRetention`` looks it up (or creates
    it) under a fixed id in the enclosing stack.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        role: Optional[iam.IRole] = None,
        runtime: str = DEFAULT_PROVIDER_RUNTIME,
    ) -> None:
        super().__init__(scope, construct_id)
        self._tags = TagManager(TagType.KEY_VALUE, "AWS::Lambda::Function")

        asset = s3_assets.Asset(
            self,
            "Code",
            path=str(PROVIDERS_DIR),
            exclude=["__pycache__", "*.pyc"],
        )

        self._role: iam.IRole = role or iam.Role(
            self,
            "ServiceRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("service-role/AWSLambdaBasicExecutionRole"),
            ],
        )
        self._permissions = PermissionAccumulator(self._role)
        # Must stay '*': the function also sets the retention of its own log
        # group, and naming that group here would make the role depend on the
        # function it is attached to.
        self._permissions.grant(RETENTION_ACTIONS, ["*"])

        self._resource = CfnResource(
            self,
            "Resource",
            type="AWS::Lambda::Function",
            properties={
                "Handler": HANDLER,
                "Runtime": runtime,
                "Code": {
                    "S3Bucket": asset.s3_bucket_name,
                    "S3Key": asset.s3_object_key,
                },
                "Role": self._role.role_arn,
                "Tags": self._tags.rendered_tags,
            },
        )
        self._function_arn = self._resource.get_att("Arn")
        asset.add_resource_metadata(self._resource, "Code")

        add_dependencies(self._resource, self._role)

    @property
    def tags(self) -> TagManager:
        return self._tags

    @property
    def function_arn(self) -> Reference:
        """ARN of the provider function, used as the custom resource service token."""
        return self._function_arn

    @property
    def resource(self) -> CfnResource:
        return self._resource

    @property
    def role(self) -> iam.IRole:
        return self._role

    @property
    def permissions(self) -> PermissionAccumulator:
        return self._permissions

    def grant_delete_log_group(self, log_group_arn: str) -> bool:
        """Allow deleting exactly the log group behind ``log_group_arn``."""
        return self._permissions.grant(DELETE_LOG_GROUP_ACTIONS, [log_group_arn])

    def grant_propagate_tags_to_log_group(self, log_group_arn: str) -> bool:
        """Allow tag management on a log group.

        The tagging API addresses the log group by its base ARN, without the
        ``:*`` suffix.
        """
        return self._permissions.grant(TAG_PROPAGATION_ACTIONS, [log_group_arn])
