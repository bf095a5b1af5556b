from __future__ import annotations
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

class NodeKind(str, Enum):
    Program = "Program"
    Error = "Error"
    ExpressionStatement = "ExpressionStatement"
    BlockStatement = "BlockStatement"
    EmptyStatement = "EmptyStatement"
    VariableDeclaration = "VariableDeclaration"
    VariableDeclarator = "VariableDeclarator"
    FunctionDeclaration = "FunctionDeclaration"
    FunctionExpression = "FunctionExpression"
    ArrowFunctionExpression = "ArrowFunctionExpression"
    ReturnStatement = "ReturnStatement"
    IfStatement = "IfStatement"
    ForStatement = "ForStatement"
    ForInStatement = "ForInStatement"
    ForOfStatement = "ForOfStatement"
    WhileStatement = "WhileStatement"
    DoWhileStatement = "DoWhileStatement"
    SwitchStatement = "SwitchStatement"
    SwitchCase = "SwitchCase"
    TryStatement = "TryStatement"
    CatchClause = "CatchClause"
    ThrowStatement = "ThrowStatement"
    BreakStatement = "BreakStatement"
    ContinueStatement = "ContinueStatement"
    Identifier = "Identifier"
    Literal = "Literal"
    TemplateLiteral = "TemplateLiteral"
    ArrayExpression = "ArrayExpression"
    ObjectExpression = "ObjectExpression"
    Property = "Property"
    SpreadElement = "SpreadElement"
    MemberExpression = "MemberExpression"
    CallExpression = "CallExpression"
    NewExpression = "NewExpression"
    AssignmentExpression = "AssignmentExpression"
    BinaryExpression = "BinaryExpression"
    LogicalExpression = "LogicalExpression"
    UnaryExpression = "UnaryExpression"
    UpdateExpression = "UpdateExpression"
    ConditionalExpression = "ConditionalExpression"
    AwaitExpression = "AwaitExpression"
    YieldExpression = "YieldExpression"
    SequenceExpression = "SequenceExpression"

class ActionTag(str, Enum):
    Start = "start"
    End = "end"
    Error = "error"
    Statement = "statement"
    Expression = "expression"
    Console = "console"
    Timer = "timer"
    Deferred = "deferred"
    Network = "network"
    FunctionCall = "functionCall"
    VariableDeclaration = "variableDeclaration"
    VariableAssignment = "variableAssignment"
    Literal = "literal"
    Identifier = "identifier"
    BinaryOperation = "binaryOperation"
    FunctionDeclaration = "functionDeclaration"
    FunctionExpression = "functionExpression"
    ArrowFunction = "arrowFunction"
    Return = "return"
    Throw = "throw"
    IfStatement = "ifStatement"
    ForLoop = "forLoop"
    ForInLoop = "forInLoop"
    ForOfLoop = "forOfLoop"
    WhileLoop = "whileLoop"
    DoWhileLoop = "doWhileLoop"
    SwitchStatement = "switchStatement"
    TryStatement = "tryStatement"
    ObjectCreation = "objectCreation"
    ArrayCreation = "arrayCreation"

class QueueId(str, Enum):
    CallStack = "callStack"
    PendingAsync = "pendingAsync"
    CallbackQueue = "callbackQueue"
    DeferredQueue = "deferredQueue"

# Names the browser-side visualizer used for the same containers.
QUEUE_ALIASES: Dict[str, QueueId] = {
    "webapis": QueueId.PendingAsync,
    "microtaskqueue": QueueId.DeferredQueue,
    "microtasks": QueueId.DeferredQueue,
    "callbacks": QueueId.CallbackQueue,
    "stack": QueueId.CallStack,
}

# Action names the visualizer's step records used.
ACTION_ALIASES: Dict[str, ActionTag] = {
    "execute": ActionTag.Statement,
    "setTimeout": ActionTag.Timer,
    "setInterval": ActionTag.Timer,
    "promise": ActionTag.Deferred,
    "await": ActionTag.Deferred,
    "yield": ActionTag.Deferred,
    "fetch": ActionTag.Network,
    "assignment": ActionTag.VariableAssignment,
}

STEP_KEY_ALIASES: Dict[str, str] = {
    "type": "kind",
    "line": "source_line",
    "sourceLine": "source_line",
    "isAsync": "is_async",
    "delay": "delay_ms",
    "delayMs": "delay_ms",
    "queue": "target_queue",
    "targetQueue": "target_queue",
    "output": "output_payload",
    "outputPayload": "output_payload",
    "variables": "bound_variables",
    "boundVariables": "bound_variables",
}

class Priority(str, Enum):
    Normal = "normal"
    High = "high"

class TaskStatus(str, Enum):
    Waiting = "waiting"
    Pending = "pending"
    Executing = "executing"
    Completed = "completed"
    Error = "error"

class TaskKind(str, Enum):
    Synchronous = "synchronous"
    SetTimeout = "setTimeout"
    SetInterval = "setInterval"
    Promise = "promise"
    AsyncAwait = "asyncAwait"
    Fetch = "fetch"
    ConsoleLog = "consoleLog"
    VariableAssignment = "variableAssignment"
    FunctionCall = "functionCall"

def coerce_queue(value: Any) -> QueueId:
    """Map any queue designation onto a QueueId; unknown values land on the call stack."""
    if isinstance(value, QueueId):
        return value
    if isinstance(value, str):
        try:
            return QueueId(value)
        except ValueError:
            pass
        key = value.replace("_", "").replace("-", "").replace(" ", "").lower()
        for q in QueueId:
            if q.value.lower() == key or q.name.lower() == key:
                return q
        if key in QUEUE_ALIASES:
            return QUEUE_ALIASES[key]
    return QueueId.CallStack

# ─── Step: one scheduling event produced by the extractor ───────
class Step(BaseModel):
    """Immutable record describing one node of the source program."""
    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    source_line: int = Field(default=1, ge=0)
    description: str = ""
    action: ActionTag = ActionTag.Statement
    is_async: bool = False
    delay_ms: int = Field(default=0, ge=0)
    target_queue: QueueId = QueueId.CallStack
    priority: Priority = Priority.Normal
    output_payload: Any = None
    bound_variables: Dict[str, Any] = Field(default_factory=dict)
    code: str = ""
    callee: Optional[str] = None

    @field_validator("target_queue", mode="before")
    @classmethod
    def coerce_target_queue(cls, v: Any) -> QueueId:
        """Unknown queue names are scheduled on the call stack."""
        return coerce_queue(v)

    @field_validator("delay_ms", mode="before")
    @classmethod
    def coerce_delay(cls, v: Any) -> int:
        if v is None:
            return 0
        try:
            return max(0, int(float(v)))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("source_line", mode="before")
    @classmethod
    def coerce_line(cls, v: Any) -> int:
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 1

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> NodeKind:
        try:
            return NodeKind(v)
        except ValueError:
            return NodeKind.ExpressionStatement

    @field_validator("action", mode="before")
    @classmethod
    def coerce_action(cls, v: Any) -> ActionTag:
        if isinstance(v, str) and v in ACTION_ALIASES:
            return ACTION_ALIASES[v]
        try:
            return ActionTag(v)
        except ValueError:
            return ActionTag.Statement

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Priority:
        try:
            return Priority(v)
        except ValueError:
            return Priority.Normal

    @field_validator("bound_variables", mode="before")
    @classmethod
    def coerce_variables(cls, v: Any) -> Dict[str, Any]:
        return dict(v) if isinstance(v, Mapping) else {}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Step":
        """Build a step from a plain mapping; camelCase and legacy keys are accepted."""
        fields = {}
        for key, value in data.items():
            name = STEP_KEY_ALIASES.get(key, key)
            if name in cls.model_fields:
                fields[name] = value
        fields.setdefault("kind", NodeKind.ExpressionStatement)
        return cls(**fields)

# ─── Task: mutable work unit with lifecycle ──────────────────────
@dataclass
class Task:
    """A step admitted into one of the scheduler's containers.
    Tasks are mutable because they have lifecycle states
    (waiting → pending → executing → completed/error)."""
    id: int
    kind: TaskKind
    description: str
    delay_ms: int
    status: TaskStatus
    created_at: int
    queue: QueueId
    step: Optional[Step] = None
    error: Optional[str] = None

    @property
    def action(self) -> Optional[ActionTag]:
        return self.step.action if self.step is not None else None

class TraceKind(str, Enum):
    Start = "start"
    Complete = "complete"
    Result = "result"
    Error = "error"
    Info = "info"

@dataclass(frozen=True)
class TraceEvent:
    at_ms: int
    kind: TraceKind
    message: str
    task_id: Optional[int] = None

    def __str__(self) -> str:
        return f"[{self.at_ms:>6}ms] {self.message}"

def task_kind_for(step: Step) -> TaskKind:
    """Derive the task kind shown to observers from a step."""
    action = step.action
    if action == ActionTag.Console:
        return TaskKind.ConsoleLog
    if action == ActionTag.Timer:
        return TaskKind.SetInterval if step.callee == "setInterval" else TaskKind.SetTimeout
    if action == ActionTag.Deferred:
        if step.kind in (NodeKind.AwaitExpression, NodeKind.YieldExpression):
            return TaskKind.AsyncAwait
        return TaskKind.Promise
    if action == ActionTag.Network:
        return TaskKind.Fetch
    if action in (ActionTag.VariableAssignment, ActionTag.VariableDeclaration):
        return TaskKind.VariableAssignment
    if action in (ActionTag.FunctionCall, ActionTag.FunctionDeclaration):
        return TaskKind.FunctionCall
    return TaskKind.Synchronous
