import pytest

from loopscope import ast as js
from loopscope.classifier import classify, timer_delay
from loopscope.errors import InvalidTimerArgument
from loopscope.extractor import parse_code_to_steps
from loopscope.parser import parse_program
from loopscope.types import ActionTag, NodeKind, Priority, QueueId, TaskKind, task_kind_for


def _call(src):
    return parse_program(src).body[0].expression


def _first(src, action):
    return next(s for s in parse_code_to_steps(src) if s.action == action)


def test_console_payload_joins_arguments():
    step = _first("console.log('Result:', result, 1 + 2, true, `t`, f());", ActionTag.Console)
    assert step.output_payload == "Result: result 1 + 2 true t [Expression]"
    assert step.target_queue == QueueId.CallStack
    assert step.priority == Priority.Normal


@pytest.mark.parametrize("method", ["log", "error", "warn", "info", "debug"])
def test_console_methods(method):
    assert _first(f"console.{method}('x')", ActionTag.Console).output_payload == "x"


@pytest.mark.parametrize("src,delay", [
    ("setTimeout(cb, 250)", 250),
    ("setTimeout(cb, '300')", 300),
    ("setTimeout(cb)", 1000),
    ("setTimeout(cb, wait)", 1000),
    ("setTimeout(cb, -5)", 0),
    ("window.setTimeout(cb, 20)", 20),
    ("setInterval(cb, 100 * 2)", 200),
    ("setTimeout(cb, 1e400)", 1000),
    ("setTimeout(cb, '1e999')", 1000),
    ("setTimeout(cb, 1e308 * 10)", 1000),
    ("setTimeout(cb, -1e400)", 1000),
])
def test_timer_delay(src, delay):
    step = _first(src, ActionTag.Timer)
    assert step.delay_ms == delay
    assert step.is_async
    assert step.target_queue == QueueId.PendingAsync


def test_non_literal_delay_raises_internally():
    with pytest.raises(InvalidTimerArgument):
        timer_delay(_call("setTimeout(cb, wait)"))


@pytest.mark.parametrize("src", ["setTimeout(cb, 1e400)", "setTimeout(cb, 0 / 0)", "setTimeout(cb, '1e999')"])
def test_non_finite_delay_raises_internally(src):
    with pytest.raises(InvalidTimerArgument):
        timer_delay(_call(src))


def test_interval_task_kind():
    step = _first("setInterval(tick, 10)", ActionTag.Timer)
    assert step.callee == "setInterval"
    assert task_kind_for(step) == TaskKind.SetInterval


@pytest.mark.parametrize("src", [
    "Promise.resolve()",
    "new Promise(r => r())",
    "Promise(x)",
    "queueMicrotask(job)",
    "p.then(done)",
    "p.catch(fail)",
    "p.finally(cleanup)",
])
def test_deferred_calls(src):
    step = _first(src, ActionTag.Deferred)
    assert step.is_async
    assert step.target_queue == QueueId.DeferredQueue
    assert step.priority == Priority.High


def test_await_is_deferred():
    step = _first("async function f() { await g() }", ActionTag.Deferred)
    assert step.kind == NodeKind.AwaitExpression
    assert task_kind_for(step) == TaskKind.AsyncAwait


def test_fetch_goes_to_pending_async():
    step = _first("fetch('/api')", ActionTag.Network)
    assert step.target_queue == QueueId.PendingAsync
    assert task_kind_for(step) == TaskKind.Fetch


def test_plain_call_is_function_call():
    step = _first("obj.method(1)", ActionTag.FunctionCall)
    assert step.description == "Function call: obj.method"
    assert step.target_queue == QueueId.CallStack


def test_callback_descriptions_use_ancestry():
    steps = parse_code_to_steps("setTimeout(() => {}, 0); list.map(x => x)")
    arrows = [s.description for s in steps if s.action == ActionTag.ArrowFunction]
    assert arrows == ["Arrow function (setTimeout callback)", "Arrow function"]


@pytest.mark.parametrize("src,expected", [
    ("const v = 7 - 2 * 3;", 1),
    ("const v = 2 ** 10;", 1024),
    ("const v = 7 % 3;", 1),
    ("const v = 9 / 3;", 3),
    ("const v = 1 / 0;", "1 / 0"),
    ("const v = 'a' + 'b';", "ab"),
    ("const v = a + 1;", "a + 1"),
    ("const v = [1, 'two', null];", [1, "two", None]),
    ("const v = { k: 1, n: { m: 2 } };", {"k": 1, "n": {"m": 2}}),
    ("const v = compute();", "[Expression]"),
    ("const v = name;", "name"),
])
def test_bound_variable_values(src, expected):
    step = _first(src, ActionTag.VariableDeclaration)
    assert step.bound_variables == {"v": expected}


def test_assignment_expression():
    step = _first("total = 3 + 4", ActionTag.VariableAssignment)
    assert step.kind == NodeKind.AssignmentExpression
    assert step.bound_variables == {"total": 7}
    assert step.description == "Assignment: total = 7"


def test_throw_statement_payload():
    step = _first("throw new Error('boom')", ActionTag.Throw)
    assert step.output_payload == "Error: boom"


def test_function_declaration_step():
    step = _first("function greet(name) { return name }", ActionTag.FunctionDeclaration)
    assert step.description == "Function declaration: greet"
    assert step.output_payload == "Function greet defined"


def test_unknown_shapes_default_to_statement():
    program = parse_program("while (x) { break }")
    loop = program.body[0]
    brk = loop.body.body[0]
    step = classify(brk, (program, loop, loop.body))
    assert step.action == ActionTag.Statement
    assert step.target_queue == QueueId.CallStack
    assert step.description == "BreakStatement statement"


def test_classify_is_pure():
    node = _call("setTimeout(cb, 10)")
    assert classify(node) == classify(node)


def test_classify_line_falls_back_to_ancestor():
    parent = js.ExpressionStatement(line=4)
    orphan = js.Identifier(name="x")
    assert classify(orphan, (parent,)).source_line == 4
