"""Terminal dashboard for watching task progress."""

from .app import TaskLoopDashboard
from .widgets import (
    format_status,
    format_task_row,
    format_progress,
    format_task_detail,
    format_log_line,
)

__all__ = [
    "TaskLoopDashboard",
    "format_status",
    "format_task_row",
    "format_progress",
    "format_task_detail",
    "format_log_line",
]
