"""CloudWatch Logs constructs."""

from .log_retention import (
    LogRetention,
    LogRetentionDescriptor,
    LogRetentionProps,
    LogRetentionRetryOptions,
    RetentionDays,
    build_descriptor,
)
from .log_retention_function import LogRetentionFunction

__all__ = [
    "LogRetention",
    "LogRetentionDescriptor",
    "LogRetentionProps",
    "LogRetentionRetryOptions",
    "RetentionDays",
    "build_descriptor",
    "LogRetentionFunction",
]
