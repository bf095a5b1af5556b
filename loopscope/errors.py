class LoopScopeError(Exception):
    pass

class ParseFailure(LoopScopeError):
    """Raised when the source text cannot be parsed."""

    def __init__(self, message: str, line: int = 1):
        super().__init__(message)
        self.line = line

class InvalidTimerArgument(LoopScopeError):
    """Raised when a timer delay is not a usable numeric literal."""
    pass

class TaskNotFound(LoopScopeError):
    """Raised when a task id is absent from every container."""

    def __init__(self, task_id: int, operation: str = ""):
        msg = f"Task {task_id} not found"
        if operation:
            msg += f" ({operation})"
        super().__init__(msg)
        self.task_id = task_id
        self.operation = operation

class ConfigError(LoopScopeError):
    pass
