"""Task lifecycle engine for agent-driven work loops."""

from .models import Task, TaskStatus, Iteration, TaskStatistics
from .state import TaskStore
from .scheduler import TaskManager

__version__ = "0.1.0"

__all__ = [
    "Task",
    "TaskStatus",
    "Iteration",
    "TaskStatistics",
    "TaskStore",
    "TaskManager",
]
