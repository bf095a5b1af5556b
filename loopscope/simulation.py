from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from opentelemetry import trace

from .clock import VirtualClock
from .config import AdmitMode, Settings, load_settings
from .errors import ConfigError
from .extractor import Extraction, extract
from .lifecycle import LifecycleTracker
from .scheduler import Scheduler
from .types import ActionTag, NodeKind, Task, TraceEvent, TraceKind
from .values import render_payload

_tracer = trace.get_tracer(__name__)

@dataclass
class RunReport:
    ticks: int
    finished: bool
    execution_order: List[Task] = field(default_factory=list)
    console_output: List[str] = field(default_factory=list)
    trace: List[TraceEvent] = field(default_factory=list)

class Simulation:
    """One event-loop run: steps in, ticks driven by a virtual clock.

    Each tick finishes the task started on the previous tick, optionally
    admits the next step (stepwise mode), starts at most one task and then
    advances the clock by one tick interval.
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[VirtualClock] = None):
        self.settings = settings or load_settings()
        self.clock = clock or VirtualClock()
        self.scheduler = Scheduler(self.clock)
        self.tracker = LifecycleTracker(self.scheduler, capacity=self.settings.trace_capacity)
        self.tracer = _tracer
        self.speed = self.settings.speed
        self.paused = False
        self.extraction = Extraction()
        self.ticks = 0
        self.console_output: List[str] = []
        self.variables: Dict[str, Any] = {}
        self.execution_order: List[Task] = []
        self._cursor = 0

    # ----- setup -----
    def load(self, source: str | Path) -> Extraction:
        self.reset()
        self.extraction = extract(source, leaf_steps=self.settings.leaf_steps)
        if self.settings.admit_mode == AdmitMode.Eager:
            for step in self.extraction.steps:
                self.scheduler.admit(step)
            self._cursor = len(self.extraction.steps)
        self.tracker.record(TraceKind.Info, f"Loaded {len(self.extraction.steps)} steps")
        logger.info("Loaded {} steps ({} mode)", len(self.extraction.steps), self.settings.admit_mode.value)
        return self.extraction

    def reset(self) -> None:
        self.scheduler.reset()
        self.clock.reset()
        self.tracker.reset()
        self.extraction = Extraction()
        self.paused = False
        self.ticks = 0
        self.console_output = []
        self.variables = {}
        self.execution_order = []
        self._cursor = 0

    # ----- controls -----
    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def set_speed(self, multiplier: float) -> None:
        if multiplier <= 0:
            raise ConfigError(f"speed multiplier must be > 0, got {multiplier}")
        self.speed = multiplier

    @property
    def tick_interval_ms(self) -> int:
        return max(1, round(self.settings.tick_interval_ms / self.speed))

    @property
    def steps_remaining(self) -> int:
        return len(self.extraction.steps) - self._cursor

    def is_finished(self) -> bool:
        return (
            self.steps_remaining == 0
            and self.tracker.current is None
            and self.scheduler.is_idle()
            and self.clock.pending_count == 0
        )

    # ----- execution -----
    def _finish_current(self) -> None:
        task = self.tracker.current
        if task is None:
            return
        step = task.step
        if step is not None and step.action == ActionTag.Throw:
            self.tracker.fail(task.id, render_payload(step.output_payload))
        elif step is not None and step.kind == NodeKind.Error:
            self.tracker.fail(task.id, step.description)
        else:
            self.tracker.complete(task.id)

    def _apply(self, task: Task) -> None:
        """Display side effects of starting a task."""
        step = task.step
        if step is None:
            return
        if step.action == ActionTag.Console and step.output_payload is not None:
            self.console_output.append(render_payload(step.output_payload))
            # newest lines only
            del self.console_output[:-self.settings.trace_capacity]
        if step.action in (ActionTag.VariableAssignment, ActionTag.VariableDeclaration):
            self.variables.update(step.bound_variables)

    def tick(self) -> Optional[Task]:
        """Run one scheduling decision; returns the task that started, if any."""
        if self.paused:
            return None
        with self.tracer.start_as_current_span("loopscope.tick") as span:
            self.ticks += 1
            self._finish_current()
            if self.settings.admit_mode == AdmitMode.Stepwise and self.steps_remaining > 0:
                self.scheduler.admit(self.extraction.steps[self._cursor])
                self._cursor += 1
            task = self.scheduler.select_next()
            if task is not None:
                source = task.queue
                started = self.tracker.begin_execution(task)
                if started is not None:
                    self._apply(started)
                    self.execution_order.append(started)
                    span.set_attribute("loopscope.task_id", started.id)
                    span.set_attribute("loopscope.queue", source.value)
            self.clock.advance(self.tick_interval_ms)
            span.set_attribute("loopscope.tick", self.ticks)
            span.set_attribute("loopscope.now_ms", self.clock.now_ms)
            return task

    def run(self, max_ticks: Optional[int] = None,
            on_tick: Optional[Callable[[Optional[Task]], None]] = None) -> RunReport:
        budget = max_ticks if max_ticks is not None else self.settings.max_ticks
        start = self.ticks
        while not self.is_finished() and not self.paused and self.ticks - start < budget:
            task = self.tick()
            if on_tick is not None:
                on_tick(task)
        finished = self.is_finished()
        if not finished:
            logger.warning("Stopped after {} ticks with work remaining", self.ticks - start)
        return RunReport(
            ticks=self.ticks,
            finished=finished,
            execution_order=list(self.execution_order),
            console_output=list(self.console_output),
            trace=self.tracker.trace,
        )

    # ----- observation -----
    def state(self) -> Dict[str, Any]:
        total = len(self.extraction.steps)
        executed = min(len(self.execution_order), total)
        current = self.tracker.current
        return {
            "current_step": executed,
            "total_steps": total,
            "progress": (executed / total) * 100 if total else 0,
            "paused": self.paused,
            "speed": self.speed,
            "now_ms": self.clock.now_ms,
            "current_task": current.description if current is not None else None,
            "variables": dict(self.variables),
            "functions": list(self.extraction.functions),
            "queues": {name: [t.description for t in tasks] for name, tasks in self.scheduler.snapshots().items()},
        }
