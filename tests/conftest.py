"""
Test configuration and fixtures for the loopscope test suite.
"""
import sys
import pytest
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loopscope.clock import VirtualClock
from loopscope.config import Settings
from loopscope.lifecycle import LifecycleTracker
from loopscope.scheduler import Scheduler
from loopscope.simulation import Simulation
from loopscope.types import ActionTag, NodeKind, Priority, QueueId, Step


@pytest.fixture
def settings() -> Settings:
    """Deterministic settings independent of LOOPSCOPE_* variables."""
    return Settings(tick_interval_ms=100)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def scheduler(clock) -> Scheduler:
    return Scheduler(clock)


@pytest.fixture
def tracker(scheduler) -> LifecycleTracker:
    return LifecycleTracker(scheduler, capacity=20)


@pytest.fixture
def simulation(settings, clock) -> Simulation:
    return Simulation(settings, clock=clock)


@pytest.fixture
def make_step():
    """Build steps for a given queue without going through the parser."""
    def _make(queue: QueueId = QueueId.CallStack, description: str = "step", delay_ms: int = 0, **kw) -> Step:
        action = {
            QueueId.PendingAsync: ActionTag.Timer,
            QueueId.DeferredQueue: ActionTag.Deferred,
        }.get(queue, ActionTag.Statement)
        priority = Priority.High if queue == QueueId.DeferredQueue else Priority.Normal
        fields = dict(
            kind=NodeKind.CallExpression,
            description=description,
            action=action,
            target_queue=queue,
            delay_ms=delay_ms,
            priority=priority,
        )
        fields.update(kw)
        return Step(**fields)
    return _make
