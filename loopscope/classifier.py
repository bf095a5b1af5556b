from __future__ import annotations
import math
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from . import ast as js
from .errors import InvalidTimerArgument
from .types import ActionTag, NodeKind, Priority, QueueId, Step
from .values import (
    PLACEHOLDER,
    binary_text,
    evaluate_binary,
    extract_value,
    js_str,
    render_argument,
    resolve,
)

CONSOLE_METHODS = frozenset({"log", "error", "warn", "info", "debug"})
TIMER_NAMES = frozenset({"setTimeout", "setInterval"})
CONTINUATIONS = frozenset({"then", "catch", "finally"})
NETWORK_NAMES = frozenset({"fetch"})

DEFAULT_TIMER_DELAY_MS = 1000

Ancestry = Sequence[js.Node]

# ---------- callee shape helpers ----------

def dotted_name(node: Optional[js.Node]) -> Optional[str]:
    """`a.b.c`, `Promise.resolve().then` and the like; None for other shapes."""
    if node is None:
        return None
    if node.kind == NodeKind.Identifier:
        return node.name
    if node.kind == NodeKind.MemberExpression:
        prop = node.property_name()
        base = dotted_name(node.object)
        if base is None or prop is None:
            return None
        return f"{base}.{prop}"
    if node.kind == NodeKind.CallExpression:
        base = dotted_name(node.callee)
        return None if base is None else f"{base}()"
    return None

def function_name(call: js.CallExpression) -> str:
    return dotted_name(call.callee) or "anonymous"

def _is_call(node: Optional[js.Node]) -> bool:
    return node is not None and node.kind in (NodeKind.CallExpression, NodeKind.NewExpression)

def _member_parts(callee: js.Node):
    if callee.kind != NodeKind.MemberExpression:
        return None, None
    obj = callee.object
    return (obj.name if obj.kind == NodeKind.Identifier else None), callee.property_name()

def is_console_call(call: js.CallExpression) -> bool:
    obj, prop = _member_parts(call.callee)
    return obj == "console" and prop in CONSOLE_METHODS

def timer_name(call: js.CallExpression) -> Optional[str]:
    callee = call.callee
    if callee.kind == NodeKind.Identifier and callee.name in TIMER_NAMES:
        return callee.name
    _, prop = _member_parts(callee)
    return prop if prop in TIMER_NAMES else None

def deferred_kind(call: js.CallExpression) -> Optional[str]:
    """'create', 'continue' or 'microtask' when the call defers work."""
    callee = call.callee
    if callee.kind == NodeKind.Identifier:
        if callee.name == "Promise":
            return "create"
        if callee.name == "queueMicrotask":
            return "microtask"
        return None
    obj, prop = _member_parts(callee)
    if obj == "Promise":
        return "create"
    if prop in CONTINUATIONS:
        return "continue"
    return None

def is_network_call(call: js.CallExpression) -> bool:
    callee = call.callee
    if callee.kind == NodeKind.Identifier:
        return callee.name in NETWORK_NAMES
    _, prop = _member_parts(callee)
    return prop in NETWORK_NAMES

def schedules_async(call: js.CallExpression) -> bool:
    return bool(timer_name(call) or deferred_kind(call) or is_network_call(call))

def timer_delay(call: js.CallExpression) -> int:
    """Delay in ms from the second argument; raises InvalidTimerArgument for non-literal or non-finite values."""
    if len(call.arguments) < 2:
        return DEFAULT_TIMER_DELAY_MS
    arg = call.arguments[1]
    value = resolve(arg)
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            value = None
    if isinstance(value, float) and not math.isfinite(value):
        value = None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTimerArgument(f"unusable timer delay: {arg.code or arg.kind.value}")
    return max(0, int(value))

def console_payload(call: js.CallExpression) -> str:
    return " ".join(render_argument(arg) for arg in call.arguments)

# ---------- per-kind rules ----------

def _line_of(node: js.Node, ancestry: Ancestry) -> int:
    if node.line:
        return node.line
    for parent in reversed(ancestry):
        if parent.line:
            return parent.line
    return 1

def _callback_owner(node: js.Node, ancestry: Ancestry) -> Optional[str]:
    """Name of the async call a function literal is handed to, if any."""
    if not ancestry:
        return None
    parent = ancestry[-1]
    if not _is_call(parent) or not any(arg is node for arg in parent.arguments):
        return None
    if parent.kind == NodeKind.NewExpression:
        return "Promise" if dotted_name(parent.callee) == "Promise" else None
    if schedules_async(parent):
        return function_name(parent)
    return None

def _call_fields(call: js.CallExpression) -> Dict[str, Any]:
    name = function_name(call)
    if is_console_call(call):
        return dict(
            description="Console output statement",
            action=ActionTag.Console,
            output_payload=console_payload(call),
            callee=name,
        )
    timer = timer_name(call)
    if timer:
        try:
            delay = timer_delay(call)
        except InvalidTimerArgument as e:
            logger.warning("{}; defaulting to {}ms", e, DEFAULT_TIMER_DELAY_MS)
            delay = DEFAULT_TIMER_DELAY_MS
        noun = "interval" if timer == "setInterval" else "timeout"
        return dict(
            description=f"{timer} call - moving to Web APIs",
            action=ActionTag.Timer,
            is_async=True,
            delay_ms=delay,
            target_queue=QueueId.PendingAsync,
            output_payload=f"Scheduled {noun} with {delay}ms delay",
            callee=timer,
        )
    deferred = deferred_kind(call)
    if deferred:
        if deferred == "continue":
            description = f"Promise continuation .{_member_parts(call.callee)[1]} - moving to microtask queue"
            output = "Continuation registered"
        elif deferred == "microtask":
            description = "queueMicrotask call - moving to microtask queue"
            output = "Microtask queued"
        else:
            description = "Promise creation - moving to microtask queue"
            output = "Promise created"
        return dict(
            description=description,
            action=ActionTag.Deferred,
            is_async=True,
            target_queue=QueueId.DeferredQueue,
            priority=Priority.High,
            output_payload=output,
            callee=name,
        )
    if is_network_call(call):
        return dict(
            description="Fetch API call - moving to Web APIs",
            action=ActionTag.Network,
            is_async=True,
            target_queue=QueueId.PendingAsync,
            output_payload="Network request initiated",
            callee=name,
        )
    if call.kind == NodeKind.NewExpression:
        return dict(description=f"Constructor call: new {name}", action=ActionTag.FunctionCall, callee=name)
    return dict(description=f"Function call: {name}", action=ActionTag.FunctionCall, callee=name)

def _new_fields(node: js.NewExpression) -> Dict[str, Any]:
    if dotted_name(node.callee) == "Promise":
        return dict(
            description="Promise creation - moving to microtask queue",
            action=ActionTag.Deferred,
            is_async=True,
            target_queue=QueueId.DeferredQueue,
            priority=Priority.High,
            output_payload="Promise created",
            callee="Promise",
        )
    return _call_fields(node)

def _assignment_target(node: Optional[js.Node]) -> str:
    if node is None:
        return PLACEHOLDER
    if node.kind == NodeKind.Identifier:
        return node.name
    return dotted_name(node) or node.code or PLACEHOLDER

def thrown_message(node: Optional[js.Node]) -> str:
    """`throw new Error('x')` → 'Error: x'; other values in their string form."""
    if node is None:
        return "undefined"
    if _is_call(node) and node.arguments:
        first = node.arguments[0]
        detail = js_str(first.value) if first.kind == NodeKind.Literal else render_argument(first)
        return f"{function_name(node)}: {detail}"
    if _is_call(node):
        return function_name(node)
    value = extract_value(node)
    return js_str(value)

_FIXED: Dict[NodeKind, tuple] = {
    NodeKind.ExpressionStatement: ("Executing expression statement", ActionTag.Expression),
    NodeKind.IfStatement: ("If statement evaluation", ActionTag.IfStatement),
    NodeKind.WhileStatement: ("While loop", ActionTag.WhileLoop),
    NodeKind.ForStatement: ("For loop", ActionTag.ForLoop),
    NodeKind.ForInStatement: ("For...in loop", ActionTag.ForInLoop),
    NodeKind.ForOfStatement: ("For...of loop", ActionTag.ForOfLoop),
    NodeKind.DoWhileStatement: ("Do...while loop", ActionTag.DoWhileLoop),
    NodeKind.SwitchStatement: ("Switch statement", ActionTag.SwitchStatement),
    NodeKind.TryStatement: ("Try statement", ActionTag.TryStatement),
}

def _fields(node: js.Node, ancestry: Ancestry) -> Dict[str, Any]:
    kind = node.kind
    if kind in _FIXED:
        description, action = _FIXED[kind]
        return dict(description=description, action=action)
    if kind == NodeKind.CallExpression:
        return _call_fields(node)
    if kind == NodeKind.NewExpression:
        return _new_fields(node)
    if kind == NodeKind.VariableDeclaration:
        names = ", ".join(d.name for d in node.declarations)
        return dict(
            description=f"Variable declaration: {names}",
            action=ActionTag.VariableDeclaration,
            bound_variables={d.name: extract_value(d.init) for d in node.declarations if d.init is not None},
        )
    if kind == NodeKind.VariableDeclarator:
        return dict(
            description=f"Assigning value to {node.name}",
            action=ActionTag.VariableAssignment,
            bound_variables={node.name: extract_value(node.init)},
        )
    if kind == NodeKind.AssignmentExpression:
        target = _assignment_target(node.left)
        value = extract_value(node.right)
        return dict(
            description=f"Assignment: {target} {node.operator} {js_str(value)}",
            action=ActionTag.VariableAssignment,
            bound_variables={target: value},
        )
    if kind == NodeKind.Literal:
        shown = f'"{node.value}"' if isinstance(node.value, str) else js_str(node.value)
        return dict(description=f"Literal value: {shown}", action=ActionTag.Literal, output_payload=node.value)
    if kind == NodeKind.TemplateLiteral:
        return dict(description=f"Template literal: `{node.raw}`", action=ActionTag.Literal, output_payload=node.raw)
    if kind == NodeKind.Identifier:
        return dict(description=f"Identifier: {node.name}", action=ActionTag.Identifier, output_payload=node.name)
    if kind == NodeKind.BinaryExpression:
        return dict(
            description=f"Binary operation: {binary_text(node)}",
            action=ActionTag.BinaryOperation,
            output_payload=evaluate_binary(node),
        )
    if kind == NodeKind.LogicalExpression:
        return dict(
            description=f"Logical operation: {binary_text(node)}",
            action=ActionTag.BinaryOperation,
            output_payload=binary_text(node),
        )
    if kind == NodeKind.FunctionDeclaration:
        prefix = "Async function" if node.is_async else "Function"
        return dict(
            description=f"{prefix} declaration: {node.name}",
            action=ActionTag.FunctionDeclaration,
            output_payload=f"Function {node.name} defined",
        )
    if kind in (NodeKind.FunctionExpression, NodeKind.ArrowFunctionExpression):
        if kind == NodeKind.ArrowFunctionExpression:
            description, action = "Arrow function", ActionTag.ArrowFunction
        else:
            description, action = "Function expression", ActionTag.FunctionExpression
            if node.name:
                description += f": {node.name}"
        if node.is_async:
            description = "Async " + description[0].lower() + description[1:]
        owner = _callback_owner(node, ancestry)
        if owner:
            description += f" ({owner} callback)"
        return dict(description=description, action=action)
    if kind == NodeKind.ReturnStatement:
        return dict(description="Return statement", action=ActionTag.Return, output_payload=extract_value(node.argument))
    if kind == NodeKind.ThrowStatement:
        return dict(description="Throw statement", action=ActionTag.Throw, output_payload=thrown_message(node.argument))
    if kind == NodeKind.AwaitExpression:
        return dict(
            description="Await expression - creating microtask",
            action=ActionTag.Deferred,
            is_async=True,
            target_queue=QueueId.DeferredQueue,
            priority=Priority.High,
            output_payload="Awaiting promise resolution",
        )
    if kind == NodeKind.YieldExpression:
        return dict(
            description="Yield expression",
            action=ActionTag.Deferred,
            is_async=True,
            target_queue=QueueId.DeferredQueue,
            priority=Priority.High,
        )
    if kind == NodeKind.ObjectExpression:
        return dict(description="Object creation", action=ActionTag.ObjectCreation, output_payload=extract_value(node))
    if kind == NodeKind.ArrayExpression:
        return dict(description="Array creation", action=ActionTag.ArrayCreation, output_payload=extract_value(node))
    return dict(description=f"{kind.value} statement", action=ActionTag.Statement)

def classify(node: js.Node, ancestry: Ancestry = ()) -> Step:
    """Map one syntax node (with its ancestors, outermost first) onto a Step.

    Pure apart from a warning on unusable timer delays; unknown shapes become a
    plain ``statement`` on the call stack.
    """
    fields = _fields(node, ancestry)
    return Step(
        kind=node.kind,
        source_line=_line_of(node, ancestry),
        code=node.code,
        **fields,
    )
