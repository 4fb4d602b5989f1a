"""Evaluate an expression for a Step Functions EvaluateExpression task.

Input event:
{
  "expression": "$.a + $.b",
  "expressionAttributeValues": {"$.a": 1, "$.b": 2}
}

Every path listed in ``expressionAttributeValues`` is replaced by its value and
the result is evaluated as a restricted Python expression: literals,
containers, arithmetic, comparisons, boolean logic, subscripts, conditional
expressions and a fixed set of builtins. ``true``/``false``/``null`` are
accepted as aliases of ``True``/``False``/``None``.

Output: the value of the expression.
"""

from __future__ import annotations

import ast
import operator
from typing import Any, Callable, Dict, Mapping

from logging_utils import get_logger

logger = get_logger(__name__)


class ExpressionError(ValueError):
    """Raised when an expression cannot be evaluated safely."""


_BINARY_OPERATORS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARISONS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}

_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "abs": abs,
    "bool": bool,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
}

_CONSTANTS: Dict[str, Any] = {
    "True": True,
    "False": False,
    "None": None,
    "true": True,
    "false": False,
    "null": None,
}

MAX_POWER_EXPONENT = 1000
MAX_INT_BITS = 4096
MAX_SEQUENCE_LENGTH = 100_000


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_result_size(op: ast.operator, left: Any, right: Any) -> None:
    """Reject Pow and Mult operands whose result would be unreasonably large."""
    if isinstance(op, ast.Pow):
        if isinstance(right, (int, float)) and abs(right) > MAX_POWER_EXPONENT:
            raise ExpressionError("Exponent too large")
        if _is_int(left) and _is_int(right) and right > 0 and abs(left).bit_length() * right > MAX_INT_BITS:
            raise ExpressionError("Result too large")
    elif isinstance(op, ast.Mult):
        if _is_int(left) and _is_int(right):
            if left.bit_length() + right.bit_length() > MAX_INT_BITS:
                raise ExpressionError("Result too large")
            return
        for sequence, count in ((left, right), (right, left)):
            if isinstance(sequence, (str, list, tuple)) and _is_int(count) and len(sequence) * count > MAX_SEQUENCE_LENGTH:
                raise ExpressionError("Result too large")


def substitute_paths(expression: str, values: Mapping[str, Any]) -> tuple[str, Dict[str, Any]]:
    """Replace each path with a placeholder name bound to its value.

    Longer paths are replaced first so ``$.ab`` is not split by ``$.a``.
    """
    bindings: Dict[str, Any] = {}
    source = expression
    for index, path in enumerate(sorted(values, key=len, reverse=True)):
        placeholder = f"__path_{index}"
        source = source.replace(path, placeholder)
        bindings[placeholder] = values[path]
    return source, bindings


class _Evaluator:
    def __init__(self, bindings: Mapping[str, Any]) -> None:
        self._bindings = bindings

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"_visit_{type(node).__name__}", None)
        if method is None:
            raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")
        return method(node)

    def _visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def _visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _visit_Name(self, node: ast.Name) -> Any:
        if node.id in self._bindings:
            return self._bindings[node.id]
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ExpressionError(f"Unknown name: {node.id}")

    def _visit_List(self, node: ast.List) -> Any:
        return [self.visit(item) for item in node.elts]

    def _visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(item) for item in node.elts)

    def _visit_Dict(self, node: ast.Dict) -> Any:
        if any(key is None for key in node.keys):
            raise ExpressionError("Dictionary unpacking is not supported")
        return {self.visit(key): self.visit(value) for key, value in zip(node.keys, node.values)}  # type: ignore[arg-type]

    def _visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        left = self.visit(node.left)
        right = self.visit(node.right)
        _check_result_size(node.op, left, right)
        try:
            return op(left, right)
        except (ArithmeticError, TypeError) as exc:
            raise ExpressionError(f"Cannot evaluate {type(node.op).__name__}: {exc}") from exc

    def _visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def _visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def _visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARISONS.get(type(op_node))
            if op is None:
                raise ExpressionError(f"Unsupported comparison: {type(op_node).__name__}")
            right = self.visit(comparator)
            if not op(left, right):
                return False
            left = right
        return True

    def _visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def _visit_Subscript(self, node: ast.Subscript) -> Any:
        container = self.visit(node.value)
        if isinstance(node.slice, ast.Slice):
            lower = self.visit(node.slice.lower) if node.slice.lower else None
            upper = self.visit(node.slice.upper) if node.slice.upper else None
            step = self.visit(node.slice.step) if node.slice.step else None
            return container[lower:upper:step]
        return container[self.visit(node.slice)]

    def _visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise ExpressionError("Only builtin functions may be called")
        if node.keywords:
            raise ExpressionError("Keyword arguments are not supported")
        args = [self.visit(arg) for arg in node.args]
        return _FUNCTIONS[node.func.id](*args)


def evaluate(expression: str, values: Mapping[str, Any]) -> Any:
    """Evaluate ``expression`` with ``values`` substituted for its paths."""
    if not isinstance(expression, str) or not expression.strip():
        raise ExpressionError("expression must be a non-empty string")
    source, bindings = substitute_paths(expression, values)
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Invalid expression {expression!r}: {exc.msg}") from exc
    return _Evaluator(bindings).visit(tree)


def handler(event: Dict[str, Any], context: Any) -> Any:
    expression = event.get("expression")
    values = event.get("expressionAttributeValues") or {}
    if not isinstance(values, dict):
        raise ExpressionError("expressionAttributeValues must be an object")
    result = evaluate(str(expression or ""), values)
    logger.info("Evaluated expression", extra={"fields": {"expression": expression}})
    return result
