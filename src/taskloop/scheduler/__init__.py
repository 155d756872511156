"""Task scheduling."""

from .manager import TaskManager

__all__ = ["TaskManager"]
