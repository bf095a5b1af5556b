# Syntax tree for the JavaScript subset accepted by the step extractor.
# One dataclass per NodeKind; children() yields sub-nodes in document order.
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterator, List, Optional

from .types import NodeKind

@dataclass
class Node:
    kind: ClassVar[NodeKind]
    line: int = 0
    code: str = ""

    def children(self) -> Iterator[Node]:
        return iter(())

def _present(*nodes: Optional[Node]) -> Iterator[Node]:
    return (n for n in nodes if n is not None)

# ---------- Statements ----------

@dataclass
class Program(Node):
    kind: ClassVar[NodeKind] = NodeKind.Program
    body: List[Node] = field(default_factory=list)

    def children(self):
        return iter(self.body)

@dataclass
class ExpressionStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ExpressionStatement
    expression: Optional[Node] = None

    def children(self):
        return _present(self.expression)

@dataclass
class BlockStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.BlockStatement
    body: List[Node] = field(default_factory=list)

    def children(self):
        return iter(self.body)

@dataclass
class EmptyStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.EmptyStatement

@dataclass
class VariableDeclaration(Node):
    kind: ClassVar[NodeKind] = NodeKind.VariableDeclaration
    declaration_kind: str = "var"
    declarations: List[VariableDeclarator] = field(default_factory=list)

    def children(self):
        return iter(self.declarations)

@dataclass
class VariableDeclarator(Node):
    kind: ClassVar[NodeKind] = NodeKind.VariableDeclarator
    name: str = ""
    init: Optional[Node] = None

    def children(self):
        return _present(self.init)

@dataclass
class FunctionDeclaration(Node):
    kind: ClassVar[NodeKind] = NodeKind.FunctionDeclaration
    name: str = ""
    params: List[str] = field(default_factory=list)
    body: Optional[Node] = None
    is_async: bool = False

    def children(self):
        return _present(self.body)

@dataclass
class FunctionExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.FunctionExpression
    name: Optional[str] = None
    params: List[str] = field(default_factory=list)
    body: Optional[Node] = None
    is_async: bool = False

    def children(self):
        return _present(self.body)

@dataclass
class ArrowFunctionExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.ArrowFunctionExpression
    params: List[str] = field(default_factory=list)
    body: Optional[Node] = None
    is_async: bool = False

    def children(self):
        return _present(self.body)

@dataclass
class ReturnStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ReturnStatement
    argument: Optional[Node] = None

    def children(self):
        return _present(self.argument)

@dataclass
class IfStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.IfStatement
    test: Optional[Node] = None
    consequent: Optional[Node] = None
    alternate: Optional[Node] = None

    def children(self):
        return _present(self.test, self.consequent, self.alternate)

@dataclass
class ForStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ForStatement
    init: Optional[Node] = None
    test: Optional[Node] = None
    update: Optional[Node] = None
    body: Optional[Node] = None

    def children(self):
        return _present(self.init, self.test, self.update, self.body)

@dataclass
class ForInStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ForInStatement
    left: Optional[Node] = None
    right: Optional[Node] = None
    body: Optional[Node] = None

    def children(self):
        return _present(self.left, self.right, self.body)

@dataclass
class ForOfStatement(ForInStatement):
    kind: ClassVar[NodeKind] = NodeKind.ForOfStatement

@dataclass
class WhileStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.WhileStatement
    test: Optional[Node] = None
    body: Optional[Node] = None

    def children(self):
        return _present(self.test, self.body)

@dataclass
class DoWhileStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.DoWhileStatement
    body: Optional[Node] = None
    test: Optional[Node] = None

    def children(self):
        return _present(self.body, self.test)

@dataclass
class SwitchCase(Node):
    kind: ClassVar[NodeKind] = NodeKind.SwitchCase
    test: Optional[Node] = None  # None for `default:`
    consequent: List[Node] = field(default_factory=list)

    def children(self):
        yield from _present(self.test)
        yield from self.consequent

@dataclass
class SwitchStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.SwitchStatement
    discriminant: Optional[Node] = None
    cases: List[SwitchCase] = field(default_factory=list)

    def children(self):
        yield from _present(self.discriminant)
        yield from self.cases

@dataclass
class CatchClause(Node):
    kind: ClassVar[NodeKind] = NodeKind.CatchClause
    param: Optional[str] = None
    body: Optional[Node] = None

    def children(self):
        return _present(self.body)

@dataclass
class TryStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.TryStatement
    block: Optional[Node] = None
    handler: Optional[CatchClause] = None
    finalizer: Optional[Node] = None

    def children(self):
        return _present(self.block, self.handler, self.finalizer)

@dataclass
class ThrowStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ThrowStatement
    argument: Optional[Node] = None

    def children(self):
        return _present(self.argument)

@dataclass
class BreakStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.BreakStatement

@dataclass
class ContinueStatement(Node):
    kind: ClassVar[NodeKind] = NodeKind.ContinueStatement

# ---------- Expressions ----------

@dataclass
class Identifier(Node):
    kind: ClassVar[NodeKind] = NodeKind.Identifier
    name: str = ""

@dataclass
class Literal(Node):
    kind: ClassVar[NodeKind] = NodeKind.Literal
    value: Any = None
    raw: str = ""

@dataclass
class TemplateLiteral(Node):
    kind: ClassVar[NodeKind] = NodeKind.TemplateLiteral
    raw: str = ""  # text between the backticks, ${...} left verbatim

@dataclass
class ArrayExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.ArrayExpression
    elements: List[Node] = field(default_factory=list)

    def children(self):
        return iter(self.elements)

@dataclass
class Property(Node):
    kind: ClassVar[NodeKind] = NodeKind.Property
    key: str = ""
    value: Optional[Node] = None
    shorthand: bool = False
    method: bool = False

    def children(self):
        return _present(self.value)

@dataclass
class ObjectExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.ObjectExpression
    properties: List[Node] = field(default_factory=list)  # Property or SpreadElement

    def children(self):
        return iter(self.properties)

@dataclass
class SpreadElement(Node):
    kind: ClassVar[NodeKind] = NodeKind.SpreadElement
    argument: Optional[Node] = None

    def children(self):
        return _present(self.argument)

@dataclass
class MemberExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.MemberExpression
    object: Optional[Node] = None
    property: Optional[Node] = None
    computed: bool = False
    optional: bool = False

    def property_name(self) -> Optional[str]:
        if not self.computed and isinstance(self.property, Identifier):
            return self.property.name
        if isinstance(self.property, Literal) and isinstance(self.property.value, str):
            return self.property.value
        return None

    def children(self):
        return _present(self.object, self.property)

@dataclass
class CallExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.CallExpression
    callee: Optional[Node] = None
    arguments: List[Node] = field(default_factory=list)

    def children(self):
        yield from _present(self.callee)
        yield from self.arguments

@dataclass
class NewExpression(CallExpression):
    kind: ClassVar[NodeKind] = NodeKind.NewExpression

@dataclass
class AssignmentExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.AssignmentExpression
    operator: str = "="
    left: Optional[Node] = None
    right: Optional[Node] = None

    def children(self):
        return _present(self.left, self.right)

@dataclass
class BinaryExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.BinaryExpression
    operator: str = "+"
    left: Optional[Node] = None
    right: Optional[Node] = None

    def children(self):
        return _present(self.left, self.right)

@dataclass
class LogicalExpression(BinaryExpression):
    kind: ClassVar[NodeKind] = NodeKind.LogicalExpression

@dataclass
class UnaryExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.UnaryExpression
    operator: str = "!"
    argument: Optional[Node] = None

    def children(self):
        return _present(self.argument)

@dataclass
class UpdateExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.UpdateExpression
    operator: str = "++"
    argument: Optional[Node] = None
    prefix: bool = False

    def children(self):
        return _present(self.argument)

@dataclass
class ConditionalExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.ConditionalExpression
    test: Optional[Node] = None
    consequent: Optional[Node] = None
    alternate: Optional[Node] = None

    def children(self):
        return _present(self.test, self.consequent, self.alternate)

@dataclass
class AwaitExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.AwaitExpression
    argument: Optional[Node] = None

    def children(self):
        return _present(self.argument)

@dataclass
class YieldExpression(AwaitExpression):
    kind: ClassVar[NodeKind] = NodeKind.YieldExpression

@dataclass
class SequenceExpression(Node):
    kind: ClassVar[NodeKind] = NodeKind.SequenceExpression
    expressions: List[Node] = field(default_factory=list)

    def children(self):
        return iter(self.expressions)
