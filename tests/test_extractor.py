import pytest

from loopscope.extractor import extract, parse_code_to_steps
from loopscope.samples import SAMPLES
from loopscope.types import ActionTag, NodeKind, Priority, QueueId

SCENARIO = "console.log('a'); setTimeout(()=>{}, 0); Promise.resolve()"


def _by_action(steps, action):
    return [s for s in steps if s.action == action]


def test_program_start_and_end_steps():
    src = "console.log('a');\nconsole.log('b');\n"
    steps = parse_code_to_steps(src)
    assert steps[0].action == ActionTag.Start
    assert steps[0].source_line == 1
    assert steps[0].code == "console.log('a');"
    assert steps[-1].action == ActionTag.End
    assert steps[-1].source_line == 3
    assert steps[-1].code == ""


@pytest.mark.parametrize("src", ["", "   ", "\n\t\n"])
def test_blank_input_yields_no_steps(src):
    assert parse_code_to_steps(src) == []


def test_parse_error_becomes_single_error_step():
    steps = parse_code_to_steps("const = ;")
    assert len(steps) == 1
    step = steps[0]
    assert step.kind == NodeKind.Error
    assert step.action == ActionTag.Error
    assert step.description.startswith("Parse error: ")
    assert step.code == "const = ;"


ORDERING_SOURCES = [
    "p\n  .then(a)\n  .catch(b)\n  .finally(c)",
    "switch (x) {\n  case 1:\n    console.log('one')\n    break\n  default:\n    console.log('other')\n}",
    "try {\n  risky()\n} catch (e) {\n  console.error(e)\n} finally {\n  done()\n}",
    "do {\n  n = n - 1\n} while (n > 0)",
    "const obj = {\n  default: 1,\n  new: 2\n}\nobj\n  .default",
    "setTimeout(cb, 1e400)",
]


@pytest.mark.parametrize("src", [SAMPLES[name] for name in sorted(SAMPLES)] + ORDERING_SOURCES)
def test_steps_follow_document_order(src):
    steps = parse_code_to_steps(src)
    lines = [s.source_line for s in steps]
    assert lines == sorted(lines)


def test_keyword_property_keeps_its_line():
    steps = parse_code_to_steps("fetch(url)\n  .then(r)\n  .catch(handle)\n  .finally(done)")
    names = {s.code: s.source_line for s in steps if s.kind == NodeKind.Identifier}
    assert names["then"] == 2
    assert names["catch"] == 3
    assert names["finally"] == 4


@pytest.mark.parametrize("src", [
    "const x = " + " + ".join(["1"] * 3000),
    "[" * 1500 + "]" * 1500,
])
def test_deeply_nested_input_becomes_error_step(src):
    steps = parse_code_to_steps(src)
    assert len(steps) == 1
    assert steps[0].kind == NodeKind.Error
    assert "nested too deeply" in steps[0].description


def test_pre_order_parent_before_children():
    steps = parse_code_to_steps("console.log('a');")
    kinds = [s.kind for s in steps[1:-1]]
    assert kinds == [
        NodeKind.ExpressionStatement,
        NodeKind.CallExpression,
        NodeKind.MemberExpression,
        NodeKind.Identifier,
        NodeKind.Identifier,
        NodeKind.Literal,
    ]


def test_scenario_targets_each_queue():
    steps = parse_code_to_steps(SCENARIO)
    scheduling = [s for s in steps if s.action in (ActionTag.Console, ActionTag.Timer, ActionTag.Deferred)]
    assert [s.target_queue for s in scheduling] == [
        QueueId.CallStack,
        QueueId.PendingAsync,
        QueueId.DeferredQueue,
    ]
    timer = scheduling[1]
    assert timer.delay_ms == 0 and timer.is_async
    assert scheduling[2].priority == Priority.High


def test_literal_arithmetic_binds_value():
    steps = parse_code_to_steps("const x = 2 + 2;")
    decl = next(s for s in steps if s.kind == NodeKind.VariableDeclaration)
    assert decl.bound_variables == {"x": 4}
    assert decl.action == ActionTag.VariableDeclaration
    declarator = next(s for s in steps if s.kind == NodeKind.VariableDeclarator)
    assert declarator.bound_variables == {"x": 4}
    assert declarator.action == ActionTag.VariableAssignment


def test_every_branch_and_loop_body_is_emitted():
    src = "if (flag) {\n  console.log('yes')\n} else {\n  console.log('no')\n}\nwhile (n) { console.log('loop') }"
    steps = parse_code_to_steps(src)
    outputs = [s.output_payload for s in _by_action(steps, ActionTag.Console)]
    assert outputs == ["yes", "no", "loop"]
    assert len(_by_action(steps, ActionTag.IfStatement)) == 1
    assert len(_by_action(steps, ActionTag.WhileLoop)) == 1


def test_functions_and_variables_are_collected():
    result = extract(SAMPLES["asyncAwait"])
    assert list(result.functions) == ["asyncFunction"]
    assert result.functions["asyncFunction"].is_async
    result = extract(SAMPLES["synchronous"])
    assert result.variables == {"result": 4}


def test_leaf_steps_can_be_disabled():
    full = parse_code_to_steps(SCENARIO)
    trimmed = parse_code_to_steps(SCENARIO, leaf_steps=False)
    leaf_kinds = {NodeKind.Identifier, NodeKind.Literal, NodeKind.TemplateLiteral}
    assert any(s.kind in leaf_kinds for s in full)
    assert not any(s.kind in leaf_kinds for s in trimmed)
    assert len(_by_action(trimmed, ActionTag.Timer)) == 1


def test_nested_callbacks_keep_document_order():
    steps = parse_code_to_steps(SAMPLES["complex"])
    timers = _by_action(steps, ActionTag.Timer)
    assert [t.delay_ms for t in timers] == [1000, 500]
    consoles = [s.output_payload for s in _by_action(steps, ActionTag.Console)]
    assert consoles == ["Main thread start", "Timeout 1", "Promise 1", "Timeout 2", "Main thread end"]
