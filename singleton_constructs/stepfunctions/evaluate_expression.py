"""Step Functions task evaluating an expression in a shared Lambda function."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from aws_cdk import Duration, aws_iam as iam, aws_lambda as lambda_, aws_stepfunctions as sfn
from constructs import Construct

from singleton_constructs.core.errors import ConfigurationError
from singleton_constructs.core.registry import get_or_create, singleton_scope
from singleton_constructs.logs.log_retention_function import PROVIDERS_DIR

EVALUATOR_ID = "Eval1891dd320f444328a022efc92ea36f14"
HANDLER = "evaluate_expression.handler"

PATH_PATTERN = re.compile(r"\$[.\[][.a-zA-Z\[\]0-9\-_]+")


def find_referenced_paths(expression: str) -> List[str]:
    """Return the JSONPath references in ``expression`` in first-seen order."""
    paths: List[str] = []
    for match in PATH_PATTERN.findall(expression):
        if match not in paths:
            paths.append(match)
    return paths


def _create_evaluator(scope: Construct, construct_id: str, runtime: lambda_.Runtime) -> lambda_.Function:
    return lambda_.Function(
        scope,
        construct_id,
        runtime=runtime,
        handler=HANDLER,
        code=lambda_.Code.from_asset(str(PROVIDERS_DIR), exclude=["__pycache__", "*.pyc"]),
        timeout=Duration.seconds(30),
        description="Evaluates expressions for Step Functions tasks",
    )


class EvaluateExpression(sfn.CustomState):
    """Task state evaluating ``expression`` against the state input.

    Paths such as ``$.a`` in the expression are resolved from the state input
    and substituted before evaluation, e.g. ``$.a + $.b``. Every task of a
    stack uses the same Lambda function. The state machine role needs
    ``grant_invoke`` to call it.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        expression: str,
        runtime: Optional[lambda_.Runtime] = None,
        comment: Optional[str] = None,
        result_path: Optional[str] = None,
    ) -> None:
        if not isinstance(expression, str) or not expression.strip():
            raise ConfigurationError("expression must be a non-empty string")

        evaluator_runtime = runtime or lambda_.Runtime.PYTHON_3_12
        evaluator = get_or_create(
            singleton_scope(scope),
            EVALUATOR_ID,
            lambda s, key: _create_evaluator(s, key, evaluator_runtime),
            expected_type=lambda_.Function,
        )

        attribute_values: Dict[str, str] = {f"{path}.$": path for path in find_referenced_paths(expression)}
        state_json: Dict[str, object] = {
            "Type": "Task",
            "Resource": evaluator.function_arn,
            "Parameters": {
                "expression": expression,
                "expressionAttributeValues": attribute_values,
            },
        }
        if comment:
            state_json["Comment"] = comment
        if result_path:
            state_json["ResultPath"] = result_path

        super().__init__(scope, construct_id, state_json=state_json)
        self._evaluator = evaluator
        self._expression = expression

    @property
    def evaluator(self) -> lambda_.Function:
        return self._evaluator

    @property
    def expression(self) -> str:
        return self._expression

    def grant_invoke(self, grantee: iam.IGrantable) -> iam.Grant:
        """Allow ``grantee`` (usually the state machine) to run the evaluator."""
        return self._evaluator.grant_invoke(grantee)
