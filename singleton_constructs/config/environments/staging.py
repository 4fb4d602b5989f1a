"""Staging environment configuration."""

import os

staging_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "log_retention_days": 30,
    "removal_policy": "destroy",
    "propagate_tags": True,
    "sdk_max_retries": 5,
    "sdk_base_delay_ms": 200,
    "provider_runtime": "python3.12",
    "managed_log_groups": [
        "/aws/lambda/staging-ingestion-worker",
        "/aws/lambda/staging-ingestion-orchestrator",
        "/aws/states/staging-processing",
    ],
    "tags": {
        "Environment": "staging",
        "Project": "LogGovernance",
        "Owner": "PlatformTeam",
    },
}
