from aws_cdk import RemovalPolicy

from .dev import dev_config
from .staging import staging_config
from .prod import prod_config


def get_environment_config(environment: str) -> dict:
    """Get configuration for the specified environment."""
    configs = {
        "dev": dev_config,
        "staging": staging_config,
        "prod": prod_config,
    }

    if environment not in configs:
        raise ValueError(f"Unknown environment: {environment}")

    return configs[environment]


def resolve_removal_policy(value: str | None) -> RemovalPolicy:
    """Map a configured removal policy name to RemovalPolicy (default: retain)."""
    normalized = str(value or "retain").strip().lower()
    if normalized == "destroy":
        return RemovalPolicy.DESTROY
    if normalized == "retain":
        return RemovalPolicy.RETAIN
    raise ValueError(f"Unknown removal policy: {value}")
