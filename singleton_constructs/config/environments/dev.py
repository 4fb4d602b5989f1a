"""Development environment configuration."""

import os

dev_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "log_retention_days": 14,
    "removal_policy": "destroy",
    "propagate_tags": True,
    # Provider SDK retries (throttling during bulk deployments)
    "sdk_max_retries": 5,
    "sdk_base_delay_ms": 200,
    "provider_runtime": "python3.12",
    "managed_log_groups": [
        "/aws/lambda/dev-ingestion-worker",
        "/aws/lambda/dev-ingestion-orchestrator",
        "/aws/states/dev-processing",
    ],
    "tags": {
        "Environment": "dev",
        "Project": "LogGovernance",
        "Owner": "PlatformTeam",
    },
}
