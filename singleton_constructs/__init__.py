"""CDK constructs backed by stack-wide singleton provider functions."""

from .logs import LogRetention, LogRetentionRetryOptions, RetentionDays
from .stepfunctions import EvaluateExpression

__all__ = ["LogRetention", "LogRetentionRetryOptions", "RetentionDays", "EvaluateExpression"]
