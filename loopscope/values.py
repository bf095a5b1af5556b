"""Literal-level value helpers used by the classifier.

Nothing here executes user code: values are resolved only when every operand
is a literal (or literal arithmetic), everything else is rendered as text.
"""
from __future__ import annotations
import math
from typing import Any, Optional

from . import ast as js
from .types import NodeKind

PLACEHOLDER = "[Expression]"
ARITHMETIC_OPS = ("+", "-", "*", "/", "%", "**")

class _Unresolved:
    def __repr__(self) -> str:
        return "UNRESOLVED"

UNRESOLVED = _Unresolved()

def js_str(value: Any) -> str:
    """Render a Python value the way JavaScript's String() would."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ",".join("" if v is None else js_str(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def _normalize(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) < 2 ** 53:
        return int(value)
    return value

def _arithmetic(op: str, left: Any, right: Any) -> Any:
    try:
        if op == "+":
            return _normalize(left + right)
        if op == "-":
            return _normalize(left - right)
        if op == "*":
            return _normalize(left * right)
        if op == "/":
            if right == 0:
                return UNRESOLVED
            return _normalize(left / right)
        if op == "%":
            if right == 0:
                return UNRESOLVED
            if isinstance(left, int) and isinstance(right, int):
                # sign follows the dividend
                result = abs(left) % abs(right)
                return result if left >= 0 else -result
            return _normalize(math.fmod(left, right))
        if op == "**":
            if isinstance(right, int) and abs(right) > 1024:
                return _normalize(float(left) ** right)
            return _normalize(left ** right)
    except (OverflowError, ZeroDivisionError, ValueError):
        return UNRESOLVED
    return UNRESOLVED

def resolve(node: Optional[js.Node]) -> Any:
    """Return the literal value of ``node`` or UNRESOLVED."""
    if node is None:
        return UNRESOLVED
    kind = node.kind
    if kind == NodeKind.Literal:
        return node.value
    if kind == NodeKind.UnaryExpression and node.operator in ("-", "+"):
        inner = resolve(node.argument)
        if _is_number(inner):
            return -inner if node.operator == "-" else inner
        return UNRESOLVED
    if kind == NodeKind.BinaryExpression:
        left, right = resolve(node.left), resolve(node.right)
        if _is_number(left) and _is_number(right) and node.operator in ARITHMETIC_OPS:
            return _arithmetic(node.operator, left, right)
        if node.operator == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right
    return UNRESOLVED

def binary_text(node: js.BinaryExpression) -> str:
    return f"{js_str(extract_value(node.left))} {node.operator} {js_str(extract_value(node.right))}"

def evaluate_binary(node: js.BinaryExpression) -> Any:
    """Evaluate literal arithmetic, or fall back to the ``left op right`` text."""
    value = resolve(node)
    if value is UNRESOLVED:
        return binary_text(node)
    return value

def extract_value(node: Optional[js.Node]) -> Any:
    if node is None:
        return None
    kind = node.kind
    if kind == NodeKind.Literal:
        return node.value
    if kind == NodeKind.Identifier:
        return node.name
    if kind == NodeKind.UnaryExpression:
        value = resolve(node)
        return PLACEHOLDER if value is UNRESOLVED else value
    if kind == NodeKind.BinaryExpression:
        return evaluate_binary(node)
    if kind == NodeKind.ObjectExpression:
        return {
            prop.key: extract_value(prop.value)
            for prop in node.properties
            if prop.kind == NodeKind.Property
        }
    if kind == NodeKind.ArrayExpression:
        return [extract_value(el) for el in node.elements]
    return PLACEHOLDER

def render_argument(node: js.Node) -> str:
    """One console argument as shown in the output line."""
    kind = node.kind
    if kind == NodeKind.Literal:
        return js_str(node.value)
    if kind == NodeKind.Identifier:
        return node.name
    if kind == NodeKind.BinaryExpression:
        return binary_text(node)
    if kind == NodeKind.TemplateLiteral:
        return node.raw
    return PLACEHOLDER

def render_payload(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        inner = ", ".join(f"{k}: {render_payload(v)}" for k, v in value.items())
        return "{ " + inner + " }" if inner else "{}"
    if isinstance(value, list):
        return "[" + ", ".join(render_payload(v) for v in value) + "]"
    return js_str(value)
