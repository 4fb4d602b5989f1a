#!/usr/bin/env python3
"""
Log Governance CDK App
Applies retention, removal and tag rules to platform log groups.
"""

import aws_cdk as cdk

from singleton_constructs.config.environments import get_environment_config
from singleton_constructs.stacks import LogGovernanceStack

app = cdk.App()

# Get environment configuration
environment = app.node.try_get_context("environment") or "dev"
config = get_environment_config(environment)

# CDK environment (account/region)
cdk_env = cdk.Environment(account=config.get("account_id"), region=config.get("region", "ap-northeast-2"))

stack_prefix = f"Platform-{environment}"

log_governance_stack = LogGovernanceStack(
    app,
    f"{stack_prefix}-LogGovernance",
    environment=environment,
    config=config,
    env=cdk_env,
)

cdk.Tags.of(app).add("Environment", environment)
cdk.Tags.of(app).add("ManagedBy", "CDK")

app.synth()
