"""State layer for task persistence."""

from .store import TaskStore, DEFAULT_STORE_FILENAME

__all__ = [
    "TaskStore",
    "DEFAULT_STORE_FILENAME",
]
