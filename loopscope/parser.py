from __future__ import annotations
import re
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Transformer, Tree, v_args
from lark.exceptions import LarkError, VisitError

from .errors import ParseFailure
from . import ast as js

GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
NESTED_TOO_DEEPLY = "input nested too deeply"

_parser = None

def _load_parser() -> Lark:
    global _parser
    if _parser is None:
        grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
        _parser = Lark(
            grammar,
            start="program",
            parser="lalr",
            propagate_positions=True,
            maybe_placeholders=True,
        )
    return _parser

def _failure(e: Exception) -> ParseFailure:
    lines = str(e).strip().splitlines()
    line = getattr(e, "line", 1)
    return ParseFailure(lines[0] if lines else type(e).__name__, line=line if isinstance(line, int) and line > 0 else 1)

def parse(source: str | Path) -> Tree:
    """Parse JavaScript source (or a Path to a file) into a lark tree."""
    text = source.read_text(encoding="utf-8") if isinstance(source, Path) else str(source)
    try:
        return _load_parser().parse(text)
    except LarkError as e:
        raise _failure(e) from e

def parse_program(source: str | Path) -> js.Program:
    text = source.read_text(encoding="utf-8") if isinstance(source, Path) else str(source)
    try:
        tree = parse(text)
        return AstBuilder(text).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, RecursionError):
            raise ParseFailure(NESTED_TOO_DEEPLY) from e
        raise _failure(e.orig_exc) from e
    except RecursionError as e:
        raise ParseFailure(NESTED_TOO_DEEPLY) from e

# ---------- Literal helpers ----------

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.S)

def unescape(body: str) -> str:
    def repl(m: re.Match) -> str:
        esc = m.group(1)
        if len(esc) > 1 and esc[0] in "ux":
            return chr(int(esc[1:].strip("{}"), 16))
        return _ESCAPES.get(esc, esc)
    return _ESCAPE_RE.sub(repl, body)

def number_value(text: str):
    if text[:2] in ("0x", "0X"):
        return int(text, 16)
    if text.isdigit():
        return int(text)
    return float(text)

def _param_names(node: Optional[js.Node]) -> List[str]:
    """Recover arrow-function parameter names from a parenthesised expression."""
    if node is None:
        return []
    if isinstance(node, js.Identifier):
        return [node.name]
    if isinstance(node, js.SequenceExpression):
        names: List[str] = []
        for expr in node.expressions:
            names.extend(_param_names(expr))
        return names
    if isinstance(node, js.AssignmentExpression):
        return _param_names(node.left)
    return [node.code or "_"]

# ---------- Tree → AST ----------

@v_args(meta=True)
class AstBuilder(Transformer):
    """Turns the lark parse tree into loopscope.ast nodes."""

    def __init__(self, source: str):
        super().__init__()
        self.source = source

    def _at(self, meta, node: js.Node) -> js.Node:
        if not getattr(meta, "empty", True):
            node.line = meta.line
            node.code = self.source[meta.start_pos:meta.end_pos]
        return node

    def _token_node(self, meta, tok: Token, node: js.Node) -> js.Node:
        node = self._at(meta, node)
        if not node.line:
            node.line = getattr(tok, "line", 0) or 0
            node.code = str(tok)
        return node

    # ----- statements -----
    def program(self, meta, children):
        return js.Program(line=1, code=self.source, body=list(children))

    def block(self, meta, children):
        return self._at(meta, js.BlockStatement(body=list(children)))

    def empty_statement(self, meta, children):
        return self._at(meta, js.EmptyStatement())

    def expression_statement(self, meta, children):
        return self._at(meta, js.ExpressionStatement(expression=children[0]))

    def var_kind(self, meta, children):
        return str(children[0])

    def variable_declaration(self, meta, children):
        return self._at(meta, js.VariableDeclaration(declaration_kind=children[0], declarations=list(children[1:])))

    def variable_declarator(self, meta, children):
        init = children[1] if len(children) > 1 else None
        return self._at(meta, js.VariableDeclarator(name=str(children[0]), init=init))

    def async_mark(self, meta, children):
        return True

    def params(self, meta, children):
        return list(children)

    def param(self, meta, children):
        return str(children[0])

    def rest_param(self, meta, children):
        return "..." + str(children[0])

    def function_declaration(self, meta, children):
        is_async, name, params, body = children
        return self._at(meta, js.FunctionDeclaration(
            name=str(name), params=params or [], body=body, is_async=bool(is_async)))

    def if_statement(self, meta, children):
        alternate = children[2] if len(children) > 2 else None
        return self._at(meta, js.IfStatement(test=children[0], consequent=children[1], alternate=alternate))

    def for_statement(self, meta, children):
        init, test, update, body = children
        return self._at(meta, js.ForStatement(init=init, test=test, update=update, body=body))

    def for_in_statement(self, meta, children):
        left, right, body = children
        return self._at(meta, js.ForInStatement(left=left, right=right, body=body))

    def for_of_statement(self, meta, children):
        left, right, body = children
        return self._at(meta, js.ForOfStatement(left=left, right=right, body=body))

    def while_statement(self, meta, children):
        return self._at(meta, js.WhileStatement(test=children[0], body=children[1]))

    def do_while_statement(self, meta, children):
        return self._at(meta, js.DoWhileStatement(body=children[0], test=children[1]))

    def switch_statement(self, meta, children):
        return self._at(meta, js.SwitchStatement(discriminant=children[0], cases=list(children[1:])))

    def case_clause(self, meta, children):
        return self._at(meta, js.SwitchCase(test=children[0], consequent=list(children[1:])))

    def default_clause(self, meta, children):
        return self._at(meta, js.SwitchCase(test=None, consequent=list(children)))

    def try_statement(self, meta, children):
        block, handler, finalizer = children
        return self._at(meta, js.TryStatement(block=block, handler=handler, finalizer=finalizer))

    def catch_clause(self, meta, children):
        param = str(children[0]) if len(children) > 1 else None
        return self._at(meta, js.CatchClause(param=param, body=children[-1]))

    def finally_clause(self, meta, children):
        return children[0]

    def return_statement(self, meta, children):
        return self._at(meta, js.ReturnStatement(argument=children[0] if children else None))

    def break_statement(self, meta, children):
        return self._at(meta, js.BreakStatement())

    def continue_statement(self, meta, children):
        return self._at(meta, js.ContinueStatement())

    def throw_statement(self, meta, children):
        return self._at(meta, js.ThrowStatement(argument=children[0]))

    # ----- operators -----
    def _op(self, meta, children):
        return str(children[0])

    assign_op = equality_op = relational_op = add_op = mul_op = unary_op = update_op = _op

    def keyword_name(self, meta, children):
        # the Token keeps its line for member properties such as `.catch`
        return children[0]

    # ----- expressions -----
    def sequence_expression(self, meta, children):
        left, right = children
        exprs = list(left.expressions) if isinstance(left, js.SequenceExpression) else [left]
        exprs.append(right)
        return self._at(meta, js.SequenceExpression(expressions=exprs))

    def assignment_expression(self, meta, children):
        left, op, right = children
        return self._at(meta, js.AssignmentExpression(operator=op, left=left, right=right))

    def yield_expression(self, meta, children):
        return self._at(meta, js.YieldExpression(argument=children[0] if children else None))

    def await_expression(self, meta, children):
        return self._at(meta, js.AwaitExpression(argument=children[0]))

    def arrow_function(self, meta, children):
        is_async, params, body = children
        return self._at(meta, js.ArrowFunctionExpression(params=params, body=body, is_async=bool(is_async)))

    def arrow_head(self, meta, children):
        if not children:
            return []
        if isinstance(children[0], Token):
            return [str(children[0])]
        return _param_names(children[0])

    def rest_arrow_head(self, meta, children):
        return ["..." + str(children[0])]

    def conditional_expression(self, meta, children):
        test, consequent, alternate = children
        return self._at(meta, js.ConditionalExpression(test=test, consequent=consequent, alternate=alternate))

    def _logical(self, meta, children, op: str):
        left, right = children
        return self._at(meta, js.LogicalExpression(operator=op, left=left, right=right))

    def or_expression(self, meta, children):
        return self._logical(meta, children, "||")

    def and_expression(self, meta, children):
        return self._logical(meta, children, "&&")

    def nullish_expression(self, meta, children):
        return self._logical(meta, children, "??")

    def binary_expression(self, meta, children):
        left, op, right = children
        return self._at(meta, js.BinaryExpression(operator=op, left=left, right=right))

    def power_expression(self, meta, children):
        left, right = children
        return self._at(meta, js.BinaryExpression(operator="**", left=left, right=right))

    def unary_expression(self, meta, children):
        op, argument = children
        return self._at(meta, js.UnaryExpression(operator=op, argument=argument))

    def prefix_update_expression(self, meta, children):
        op, argument = children
        return self._at(meta, js.UpdateExpression(operator=op, argument=argument, prefix=True))

    def postfix_update_expression(self, meta, children):
        argument, op = children
        return self._at(meta, js.UpdateExpression(operator=op, argument=argument, prefix=False))

    def _member(self, meta, children, optional: bool = False):
        obj, name = children
        prop = js.Identifier(name=str(name), code=str(name),
                             line=getattr(name, "line", 0) or getattr(meta, "line", 0))
        return self._at(meta, js.MemberExpression(object=obj, property=prop, optional=optional))

    def member_expression(self, meta, children):
        return self._member(meta, children)

    def optional_member_expression(self, meta, children):
        return self._member(meta, children, optional=True)

    def computed_member_expression(self, meta, children):
        obj, prop = children
        return self._at(meta, js.MemberExpression(object=obj, property=prop, computed=True))

    def arguments(self, meta, children):
        return list(children)

    def call_expression(self, meta, children):
        callee, args = children
        return self._at(meta, js.CallExpression(callee=callee, arguments=args))

    def new_expression(self, meta, children):
        callee, args = children
        return self._at(meta, js.NewExpression(callee=callee, arguments=args))

    def spread_element(self, meta, children):
        return self._at(meta, js.SpreadElement(argument=children[0]))

    def function_expression(self, meta, children):
        is_async, name, params, body = children
        return self._at(meta, js.FunctionExpression(
            name=str(name) if name is not None else None,
            params=params or [], body=body, is_async=bool(is_async)))

    # ----- primaries -----
    def identifier(self, meta, children):
        tok = children[0]
        return self._token_node(meta, tok, js.Identifier(name=str(tok)))

    def number(self, meta, children):
        tok = children[0]
        return self._token_node(meta, tok, js.Literal(value=number_value(str(tok)), raw=str(tok)))

    def string(self, meta, children):
        tok = children[0]
        return self._token_node(meta, tok, js.Literal(value=unescape(str(tok)[1:-1]), raw=str(tok)))

    def template(self, meta, children):
        tok = children[0]
        return self._token_node(meta, tok, js.TemplateLiteral(raw=str(tok)[1:-1]))

    def true_literal(self, meta, children):
        return self._at(meta, js.Literal(value=True, raw="true"))

    def false_literal(self, meta, children):
        return self._at(meta, js.Literal(value=False, raw="false"))

    def null_literal(self, meta, children):
        return self._at(meta, js.Literal(value=None, raw="null"))

    def array(self, meta, children):
        return self._at(meta, js.ArrayExpression(elements=list(children)))

    def object(self, meta, children):
        return self._at(meta, js.ObjectExpression(properties=list(children)))

    def _key(self, key) -> str:
        if isinstance(key, Token) and key.type == "STRING":
            return unescape(str(key)[1:-1])
        return str(key)

    def key_value_property(self, meta, children):
        key, value = children
        return self._at(meta, js.Property(key=self._key(key), value=value))

    def shorthand_property(self, meta, children):
        tok = children[0]
        value = js.Identifier(name=str(tok), code=str(tok), line=getattr(tok, "line", 0))
        return self._at(meta, js.Property(key=str(tok), value=value, shorthand=True))

    def method_property(self, meta, children):
        key, params, body = children
        fn = self._at(meta, js.FunctionExpression(name=self._key(key), params=params or [], body=body))
        return self._at(meta, js.Property(key=self._key(key), value=fn, method=True))

    def spread_property(self, meta, children):
        return self._at(meta, js.SpreadElement(argument=children[0]))

    def computed_key(self, meta, children):
        inner = children[0]
        return "[" + (getattr(inner, "code", "") or "expression") + "]"
