from __future__ import annotations
from collections import deque
from typing import Deque, List, Optional

from loguru import logger

from .errors import TaskNotFound
from .scheduler import Scheduler
from .types import QueueId, Task, TaskKind, TaskStatus, TraceEvent, TraceKind
from .values import render_payload

DEFAULT_TRACE_CAPACITY = 20

def start_message(task: Task) -> str:
    kind = task.kind
    if kind == TaskKind.ConsoleLog:
        return f"Executing console.log: {task.description}"
    if kind in (TaskKind.SetTimeout, TaskKind.SetInterval):
        return f"Executing {kind.value} callback ({task.delay_ms}ms)"
    if kind == TaskKind.Promise:
        return "Executing Promise microtask"
    if kind == TaskKind.AsyncAwait:
        return "Executing async/await operation"
    if kind == TaskKind.VariableAssignment:
        return "Executing variable assignment"
    if kind == TaskKind.FunctionCall:
        return "Executing function call"
    if kind == TaskKind.Synchronous:
        return "Executing synchronous task"
    return f"Executing: {task.description}"

def completion_message(task: Task) -> str:
    kind = task.kind
    if kind == TaskKind.ConsoleLog:
        return f"Console.log completed: {task.description}"
    if kind in (TaskKind.SetTimeout, TaskKind.SetInterval):
        return f"{kind.value} callback completed ({task.delay_ms}ms)"
    if kind == TaskKind.Promise:
        return "Promise microtask completed"
    if kind == TaskKind.AsyncAwait:
        return "Async/await operation completed"
    if kind == TaskKind.VariableAssignment:
        return "Variable assignment completed"
    if kind == TaskKind.FunctionCall:
        return "Function call completed"
    if kind == TaskKind.Synchronous:
        return "Synchronous task completed"
    return f"Task completed: {task.description}"

def result_message(task: Task) -> Optional[str]:
    """The optional second event recorded on completion."""
    step = task.step
    kind = task.kind
    if kind == TaskKind.ConsoleLog:
        if step is None or step.output_payload is None:
            return None
        return f"Output: {render_payload(step.output_payload)}"
    if kind == TaskKind.VariableAssignment:
        if step is None or not step.bound_variables:
            return None
        pairs = ", ".join(f"{k} = {render_payload(v)}" for k, v in step.bound_variables.items())
        return f"Result: {pairs}"
    if kind == TaskKind.FunctionCall:
        name = step.callee if step is not None and step.callee else None
        return f"Function executed: {name}" if name else None
    if kind in (TaskKind.SetTimeout, TaskKind.SetInterval):
        return f"Callback executed after {task.delay_ms}ms delay"
    if kind == TaskKind.Promise:
        return "Promise resolved successfully"
    if kind == TaskKind.AsyncAwait:
        return "Async operation resolved"
    if kind == TaskKind.Fetch:
        return "Network response received"
    return None

class LifecycleTracker:
    """Drives Pending → Executing → Completed/Error and keeps a capped trace."""

    def __init__(self, scheduler: Scheduler, capacity: int = DEFAULT_TRACE_CAPACITY):
        self.scheduler = scheduler
        self.capacity = capacity
        self._trace: Deque[TraceEvent] = deque(maxlen=capacity)
        self.current: Optional[Task] = None
        self.finished: List[Task] = []

    @property
    def trace(self) -> List[TraceEvent]:
        return list(self._trace)

    def record(self, kind: TraceKind, message: str, task_id: Optional[int] = None) -> TraceEvent:
        event = TraceEvent(at_ms=self.scheduler.clock.now_ms, kind=kind, message=message, task_id=task_id)
        self._trace.append(event)
        return event

    def begin_execution(self, task: Task) -> Optional[Task]:
        try:
            queue = self.scheduler.location(task.id)
            if queue is None or queue == QueueId.PendingAsync:
                raise TaskNotFound(task.id, "begin_execution")
        except TaskNotFound as e:
            logger.warning("{}", e)
            return None
        task = self.scheduler.remove(task.id)
        if task is None:
            return None
        if self.current is not None:
            logger.warning("Task {} still executing when task {} began", self.current.id, task.id)
        task.status = TaskStatus.Executing
        self.current = task
        self.record(TraceKind.Start, start_message(task), task.id)
        logger.debug("begin #{} from {}", task.id, queue.value)
        return task

    def _executing(self, task_id: int, operation: str) -> Task:
        if self.current is None or self.current.id != task_id:
            raise TaskNotFound(task_id, operation)
        return self.current

    def complete(self, task_id: int) -> Optional[Task]:
        try:
            task = self._executing(task_id, "complete")
        except TaskNotFound as e:
            logger.warning("{}", e)
            return None
        task.status = TaskStatus.Completed
        self.current = None
        self.finished.append(task)
        self.record(TraceKind.Complete, completion_message(task), task.id)
        result = result_message(task)
        if result:
            self.record(TraceKind.Result, result, task.id)
        return task

    def fail(self, task_id: int, message: str) -> Optional[Task]:
        """Mark a task as failed; it may be executing or still queued."""
        if self.current is not None and self.current.id == task_id:
            task = self.current
            self.current = None
        else:
            task = self.scheduler.find(task_id)
            if task is None:
                logger.warning("{}", TaskNotFound(task_id, "fail"))
                return None
            self.scheduler.remove(task_id)
        task.status = TaskStatus.Error
        task.error = message
        self.finished.append(task)
        self.record(TraceKind.Error, f"Error in {task.description}: {message}", task.id)
        return task

    def reset(self) -> None:
        self._trace.clear()
        self.current = None
        self.finished = []
