"""Data models for the taskloop system."""

from .task import (
    TaskStatus,
    Iteration,
    Task,
)
from .state import (
    StoreMetadata,
    TaskStatistics,
)

__all__ = [
    # Task models
    "TaskStatus",
    "Iteration",
    "Task",
    # Store models
    "StoreMetadata",
    "TaskStatistics",
]
