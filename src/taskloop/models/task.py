"""Task-related data models."""

import copy
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Union

from ..core.exceptions import (
    InvalidTaskError,
    IterationAlreadyCompleteError,
    NoActiveIterationError,
)


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    PAUSED = "paused"
    FAILED = "failed"

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """Check whether value names a known status."""
        if isinstance(value, cls):
            return True
        try:
            cls(value)
        except ValueError:
            return False
        return True

    def is_terminal(self) -> bool:
        """Completed, skipped and failed tasks are never scheduled again."""
        return self in (TaskStatus.COMPLETED, TaskStatus.SKIPPED, TaskStatus.FAILED)

    def is_pending(self) -> bool:
        """Pending or paused: not started yet, or waiting to be resumed."""
        return self in (TaskStatus.PENDING, TaskStatus.PAUSED)


# Zero timestamps ("0001-01-01T00:00:00Z") mean "unset".
_ZERO_TIME_PREFIX = "0001-01-01"
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp, keeping None for unset values."""
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Args:
        value: ISO string, datetime, or None

    Returns:
        datetime, or None for empty and zero timestamps

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    if value.startswith(_ZERO_TIME_PREFIX):
        return None
    text = value
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    return _as_utc(datetime.fromisoformat(text))


def _as_utc(value: datetime) -> datetime:
    # Naive values are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_since(start: datetime) -> timedelta:
    return _now() - _as_utc(start)


@dataclass
class Iteration:
    """One timed attempt at completing a task."""
    number: int
    started_at: datetime = field(default_factory=_now)
    ended_at: Optional[datetime] = None
    result: str = ""
    agent_output: str = ""
    session_id: str = ""

    def __post_init__(self):
        self.started_at = _as_utc(self.started_at)
        if self.ended_at is not None:
            self.ended_at = _as_utc(self.ended_at)

    def is_complete(self) -> bool:
        """An iteration is complete once it has an end time."""
        return self.ended_at is not None

    def duration(self) -> timedelta:
        """Elapsed time; open iterations are measured up to now."""
        if self.ended_at is None:
            return _elapsed_since(self.started_at)
        return _as_utc(self.ended_at) - _as_utc(self.started_at)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "number": self.number,
            "started_at": format_timestamp(self.started_at),
            "ended_at": format_timestamp(self.ended_at),
            "result": self.result,
            "agent_output": self.agent_output,
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Iteration":
        """Create Iteration from dictionary."""
        return cls(
            number=int(data.get("number", 0)),
            started_at=parse_timestamp(data.get("started_at")) or _now(),
            ended_at=parse_timestamp(data.get("ended_at")),
            result=data.get("result") or "",
            agent_output=data.get("agent_output") or "",
            session_id=data.get("session_id") or "",
        )


@dataclass
class Task:
    """
    A unit of work with identity, status and attempt history.

    Status changes go through the methods below. ``start_iteration`` and
    ``resume`` do not check for terminal states or for an iteration that is
    still open; callers that need those guards must apply them.
    """
    id: str
    name: str
    description: str = ""
    status: Union[TaskStatus, str] = TaskStatus.PENDING
    order: int = 0
    session_id: str = ""
    iterations: List[Iteration] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        """Post-initialization processing."""
        # Unknown status strings are kept as-is so validate() can report them.
        if isinstance(self.status, str) and TaskStatus.is_valid(self.status):
            self.status = TaskStatus(self.status)
        self.created_at = _as_utc(self.created_at) if self.created_at else _now()
        self.updated_at = _as_utc(self.updated_at) if self.updated_at else self.created_at
        if self.completed_at is not None:
            self.completed_at = _as_utc(self.completed_at)

    @classmethod
    def new(cls, task_id: str, name: str, description: str = "") -> "Task":
        """Create a pending task with empty history."""
        return cls(id=task_id, name=name, description=description)

    # ---- iteration state machine ----

    def iteration_count(self) -> int:
        """Number of iterations attempted on this task."""
        return len(self.iterations)

    def current_iteration(self) -> Optional[Iteration]:
        """Most recent iteration, or None if none was started."""
        if not self.iterations:
            return None
        return self.iterations[-1]

    def start_iteration(self) -> Iteration:
        """Set status to in_progress and append a new open iteration."""
        now = _now()
        self.status = TaskStatus.IN_PROGRESS
        self.updated_at = now
        iteration = Iteration(number=len(self.iterations) + 1, started_at=now)
        self.iterations.append(iteration)
        return iteration

    def end_iteration(self, result: str, output: str = "", session_id: str = "") -> Iteration:
        """
        Close the current iteration.

        Args:
            result: Outcome tag (e.g. "DONE", "NEXT", "ERROR")
            output: Captured agent output
            session_id: Agent session token; copied onto the task when non-empty

        Returns:
            The closed iteration

        Raises:
            NoActiveIterationError: If no iteration was started
            IterationAlreadyCompleteError: If the current iteration is closed
        """
        current = self.current_iteration()
        if current is None:
            raise NoActiveIterationError(self.id)
        if current.is_complete():
            raise IterationAlreadyCompleteError(self.id, current.number)

        now = _now()
        current.ended_at = now
        current.result = result
        current.agent_output = output
        if session_id:
            current.session_id = session_id
            self.session_id = session_id
        self.updated_at = now
        return current

    # ---- status transitions ----

    def mark_completed(self) -> None:
        now = _now()
        self.status = TaskStatus.COMPLETED
        self.completed_at = now
        self.updated_at = now

    def mark_failed(self) -> None:
        self.status = TaskStatus.FAILED
        self.updated_at = _now()

    def mark_skipped(self) -> None:
        self.status = TaskStatus.SKIPPED
        self.updated_at = _now()

    def mark_paused(self) -> None:
        self.status = TaskStatus.PAUSED
        self.updated_at = _now()

    def resume(self) -> Optional[Iteration]:
        """Start a new iteration if paused; otherwise do nothing and return None."""
        if self.status != TaskStatus.PAUSED:
            return None
        return self.start_iteration()

    def is_terminal(self) -> bool:
        return isinstance(self.status, TaskStatus) and self.status.is_terminal()

    # ---- metadata ----

    def set_metadata(self, key: str, value: str) -> None:
        """Set a metadata key-value pair."""
        self.metadata[key] = value
        self.updated_at = _now()

    def get_metadata(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a metadata value, or default if missing."""
        return self.metadata.get(key, default)

    def total_duration(self) -> timedelta:
        """Total time spent over all iterations."""
        total = timedelta()
        for iteration in self.iterations:
            total += iteration.duration()
        return total

    def validate(self) -> None:
        """
        Validate the task.

        Raises:
            InvalidTaskError: If id or name is empty, or status is unknown
        """
        if not self.id:
            raise InvalidTaskError("<empty>", "task ID is required")
        if not self.name:
            raise InvalidTaskError(self.id, "task name is required")
        if not TaskStatus.is_valid(self.status):
            raise InvalidTaskError(self.id, f"invalid task status: {self.status}")

    def clone(self) -> "Task":
        """Return a fully independent deep copy."""
        return copy.deepcopy(self)

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value if isinstance(self.status, TaskStatus) else self.status,
            "order": self.order,
            "session_id": self.session_id,
            "iterations": [i.to_dict() for i in self.iterations],
            "metadata": dict(self.metadata),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "completed_at": format_timestamp(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create Task from dictionary."""
        iterations = [Iteration.from_dict(i) for i in data.get("iterations") or []]
        metadata = {str(k): str(v) for k, v in (data.get("metadata") or {}).items()}

        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
            status=data.get("status") or TaskStatus.PENDING.value,
            order=int(data.get("order") or 0),
            session_id=data.get("session_id") or "",
            iterations=iterations,
            metadata=metadata,
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
        )
