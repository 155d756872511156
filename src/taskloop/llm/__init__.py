"""Agent backends."""

from .client import Agent, AgentResult, AgentStatus, RunOptions
from .cursor_cli import CursorCLIAgent, parse_task_status, extract_session_id
from .registry import AgentRegistry

__all__ = [
    "Agent",
    "AgentResult",
    "AgentStatus",
    "RunOptions",
    "CursorCLIAgent",
    "parse_task_status",
    "extract_session_id",
    "AgentRegistry",
]
