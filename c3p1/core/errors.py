"""Exception types raised across c3p1."""


class C3P1Error(Exception):
    """Base class for c3p1 errors."""


class TaskNotFoundError(C3P1Error):
    """Raised when a task name is not in the scheduler registry."""

    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Task not found: {task_name}")


class TaskRunStateError(C3P1Error):
    """Raised when a task run transition is attempted from a terminal state."""
