"""Step Functions task constructs."""

from .evaluate_expression import EvaluateExpression, find_referenced_paths

__all__ = ["EvaluateExpression", "find_referenced_paths"]
