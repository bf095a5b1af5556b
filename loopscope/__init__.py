from .errors import ConfigError, InvalidTimerArgument, LoopScopeError, ParseFailure, TaskNotFound
from .types import ActionTag, NodeKind, Priority, QueueId, Step, Task, TaskKind, TaskStatus, TraceEvent, TraceKind
from .parser import parse, parse_program
from .classifier import classify
from .extractor import Extraction, extract, parse_code_to_steps
from .clock import VirtualClock
from .scheduler import Scheduler
from .lifecycle import LifecycleTracker
from .config import AdmitMode, Settings, load_settings
from .simulation import RunReport, Simulation
from .samples import SAMPLES

__all__ = [
    "ActionTag", "AdmitMode", "ConfigError", "Extraction", "InvalidTimerArgument",
    "LifecycleTracker", "LoopScopeError", "NodeKind", "ParseFailure", "Priority",
    "QueueId", "RunReport", "SAMPLES", "Scheduler", "Settings", "Simulation", "Step",
    "Task", "TaskKind", "TaskNotFound", "TaskStatus", "TraceEvent", "TraceKind",
    "VirtualClock", "classify", "extract", "load_settings", "parse", "parse_code_to_steps",
    "parse_program",
]
