from __future__ import annotations
import copy
from collections import deque
from functools import partial
from typing import Any, Deque, Dict, List, Mapping, Optional, Union

from loguru import logger

from .clock import VirtualClock
from .errors import TaskNotFound
from .types import QueueId, Step, Task, TaskStatus, task_kind_for

# Selection order: deferred work first, then elapsed callbacks, then sync code.
RUN_ORDER = (QueueId.DeferredQueue, QueueId.CallbackQueue, QueueId.CallStack)

class Scheduler:
    """Owns the four task containers and picks the next runnable task.

    Every task lives in exactly one container; ``_location`` mirrors that so
    lookups and moves never scan more than the owning queue.
    """

    def __init__(self, clock: Optional[VirtualClock] = None):
        self.clock = clock or VirtualClock()
        self._queues: Dict[QueueId, Deque[Task]] = {q: deque() for q in QueueId}
        self._location: Dict[int, QueueId] = {}
        self._next_id = 1

    # ----- admission -----
    def admit(self, step: Union[Step, Mapping[str, Any]]) -> Task:
        if not isinstance(step, Step):
            step = Step.from_mapping(step)
        queue = step.target_queue
        task = Task(
            id=self._next_id,
            kind=task_kind_for(step),
            description=step.description,
            delay_ms=step.delay_ms,
            status=TaskStatus.Waiting if queue == QueueId.PendingAsync else TaskStatus.Pending,
            created_at=self.clock.now_ms,
            queue=queue,
            step=step,
        )
        self._next_id += 1
        self._queues[queue].append(task)
        self._location[task.id] = queue
        if queue == QueueId.PendingAsync:
            self.clock.call_later(task.delay_ms, partial(self.advance_timer, task.id), key=task.id)
        logger.debug("admit #{} {} -> {}", task.id, task.kind.value, queue.value)
        return task

    # ----- selection -----
    def select_next(self) -> Optional[Task]:
        """Head of the highest-priority non-empty queue; reading never mutates."""
        for queue in RUN_ORDER:
            tasks = self._queues[queue]
            if tasks:
                return tasks[0]
        return None

    # ----- moves -----
    def _locate(self, task_id: int, operation: str) -> QueueId:
        queue = self._location.get(task_id)
        if queue is None:
            raise TaskNotFound(task_id, operation)
        return queue

    def _take(self, task_id: int, queue: QueueId) -> Task:
        tasks = self._queues[queue]
        for index, task in enumerate(tasks):
            if task.id == task_id:
                del tasks[index]
                del self._location[task_id]
                return task
        raise TaskNotFound(task_id, f"take from {queue.value}")

    def advance_timer(self, task_id: int) -> Optional[Task]:
        """Move an elapsed PendingAsync task to the back of the callback queue."""
        try:
            queue = self._locate(task_id, "advance_timer")
            if queue != QueueId.PendingAsync:
                raise TaskNotFound(task_id, "advance_timer")
            task = self._take(task_id, queue)
        except TaskNotFound as e:
            logger.warning("{}", e)
            return None
        task.queue = QueueId.CallbackQueue
        task.status = TaskStatus.Pending
        self._queues[QueueId.CallbackQueue].append(task)
        self._location[task_id] = QueueId.CallbackQueue
        logger.debug("timer elapsed #{} at {}ms", task_id, self.clock.now_ms)
        return task

    def remove(self, task_id: int) -> Optional[Task]:
        """Detach a task from whichever container holds it."""
        try:
            return self._take(task_id, self._locate(task_id, "remove"))
        except TaskNotFound as e:
            logger.warning("{}", e)
            return None

    def location(self, task_id: int) -> Optional[QueueId]:
        return self._location.get(task_id)

    def find(self, task_id: int) -> Optional[Task]:
        queue = self._location.get(task_id)
        if queue is None:
            return None
        return next((t for t in self._queues[queue] if t.id == task_id), None)

    # ----- snapshots -----
    def snapshot(self, queue: QueueId) -> List[Task]:
        return [copy.copy(t) for t in self._queues[queue]]

    @property
    def call_stack(self) -> List[Task]:
        return self.snapshot(QueueId.CallStack)

    @property
    def pending_async(self) -> List[Task]:
        return self.snapshot(QueueId.PendingAsync)

    @property
    def callback_queue(self) -> List[Task]:
        return self.snapshot(QueueId.CallbackQueue)

    @property
    def deferred_queue(self) -> List[Task]:
        return self.snapshot(QueueId.DeferredQueue)

    def snapshots(self) -> Dict[str, List[Task]]:
        return {q.value: self.snapshot(q) for q in QueueId}

    def is_idle(self) -> bool:
        return not self._location

    def __len__(self) -> int:
        return len(self._location)

    def reset(self) -> None:
        """Drop every task and cancel outstanding timers; ids restart at 1."""
        for tasks in self._queues.values():
            tasks.clear()
        self._location.clear()
        self._next_id = 1
        self.clock.cancel_all()
