# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Safe evaluation of small arithmetic and boolean expressions.

Two features of the engine are table-driven and therefore need to evaluate
expressions written in configuration files:

- cash-flow recommendation rules, whose ``condition`` is a boolean
  expression over health metrics (e.g. "negative_months > positive_months"),
- custom financial ratios, whose ``formula`` is an arithmetic expression
  over measures (e.g. "(net_profit / revenue) * 100").

Expressions are parsed with ``ast`` and walked node by node. Only numeric
literals, variable names, arithmetic operators, comparisons and
``and`` / ``or`` / ``not`` are accepted; anything else (calls, attribute
access, subscripts, strings) raises ``ExpressionError``.
"""

import ast
import operator
from collections.abc import Mapping
from functools import lru_cache

from .errors import ExpressionError

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARATORS = {
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}


@lru_cache(maxsize=256)
def _parse(expr: str) -> ast.Expression:
    try:
        return ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Invalid expression syntax: {expr!r}") from exc


def _eval(node: ast.AST, variables: Mapping[str, float]) -> float:
    if isinstance(node, ast.Expression):
        return _eval(node.body, variables)

    if isinstance(node, ast.Constant):
        # bool is a subclass of int, so True/False are accepted as 1/0.
        if isinstance(node.value, (int, float)):
            return float(node.value)
        raise ExpressionError(f"Unsupported constant in expression: {node.value!r}")

    if isinstance(node, ast.Name):
        if node.id not in variables:
            raise ExpressionError(f"Unknown variable in expression: {node.id!r}")
        return float(variables[node.id])

    if isinstance(node, ast.BinOp):
        op_func = _BINARY_OPERATORS.get(type(node.op))
        if op_func is None:
            raise ExpressionError(
                f"Unsupported operator in expression: {type(node.op).__name__}"
            )
        return float(op_func(_eval(node.left, variables), _eval(node.right, variables)))

    if isinstance(node, ast.UnaryOp):
        op_func = _UNARY_OPERATORS.get(type(node.op))
        if op_func is None:
            raise ExpressionError(
                f"Unsupported unary operator: {type(node.op).__name__}"
            )
        return float(op_func(_eval(node.operand, variables)))

    if isinstance(node, ast.Compare):
        left = _eval(node.left, variables)
        for op, comparator in zip(node.ops, node.comparators):
            op_func = _COMPARATORS.get(type(op))
            if op_func is None:
                raise ExpressionError(
                    f"Unsupported comparison in expression: {type(op).__name__}"
                )
            right = _eval(comparator, variables)
            if not op_func(left, right):
                return 0.0
            left = right
        return 1.0

    if isinstance(node, ast.BoolOp):
        values = (_eval(v, variables) for v in node.values)
        if isinstance(node.op, ast.And):
            return 1.0 if all(values) else 0.0
        return 1.0 if any(values) else 0.0

    raise ExpressionError(f"Unsupported expression node: {type(node).__name__}")


def evaluate(expr: str, variables: Mapping[str, float]) -> float:
    """
    Evaluate an arithmetic expression using the given variables.

    Args:
        expr: Expression string (e.g. "net_profit / revenue * 100").
        variables: Mapping of variable names to numeric values.

    Returns:
        The evaluated float value.

    Raises:
        ExpressionError: if the expression is malformed, uses unsupported
            constructs or references an unknown variable.
        ZeroDivisionError: if the expression divides by zero.
    """
    return _eval(_parse(expr), variables)


def evaluate_condition(expr: str, variables: Mapping[str, float]) -> bool:
    """Evaluate a boolean expression (comparisons, and/or/not)."""
    return bool(evaluate(expr, variables))


def validate_expression(expr: str) -> None:
    """
    Check that an expression only uses supported syntax.

    Variables are not resolved, so this can run when rules are loaded,
    before any metric exists.
    """
    tree = _parse(expr)
    allowed = (
        ast.Expression,
        ast.Constant,
        ast.Name,
        ast.Load,
        ast.BinOp,
        ast.UnaryOp,
        ast.Compare,
        ast.BoolOp,
        ast.And,
        ast.Or,
        *_BINARY_OPERATORS,
        *_UNARY_OPERATORS,
        *_COMPARATORS,
    )
    for node in ast.walk(tree):
        if not isinstance(node, allowed):
            raise ExpressionError(
                f"Unsupported expression node {type(node).__name__} in {expr!r}"
            )
        if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
            raise ExpressionError(f"Unsupported constant {node.value!r} in {expr!r}")
