"""Production environment configuration."""

import os

prod_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    # Audit requirement: keep production logs for a year
    "log_retention_days": 365,
    "removal_policy": "retain",
    "propagate_tags": True,
    "sdk_max_retries": 8,
    "sdk_base_delay_ms": 500,
    "provider_runtime": "python3.12",
    "managed_log_groups": [
        "/aws/lambda/prod-ingestion-worker",
        "/aws/lambda/prod-ingestion-orchestrator",
        "/aws/states/prod-processing",
    ],
    "tags": {
        "Environment": "prod",
        "Project": "LogGovernance",
        "Owner": "PlatformTeam",
        "CostCenter": "Engineering",
    },
}
