"""Store-level data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List

from .task import Task, TaskStatus, format_timestamp, parse_timestamp


STORE_VERSION = "1.0"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StoreMetadata:
    """Metadata for the persisted task collection as a whole."""
    version: str = STORE_VERSION
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreMetadata":
        """Create StoreMetadata from dictionary."""
        now = _utc_now()
        return cls(
            version=str(data.get("version") or STORE_VERSION),
            created_at=parse_timestamp(data.get("created_at")) or now,
            updated_at=parse_timestamp(data.get("updated_at")) or now,
        )


@dataclass
class TaskStatistics:
    """Per-status task counts."""
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    paused: int = 0
    completed: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def remaining(self) -> int:
        """Tasks not in a terminal status."""
        return self.pending + self.in_progress + self.paused

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "paused": self.paused,
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": self.failed,
            "remaining": self.remaining,
        }

    @classmethod
    def from_tasks(cls, tasks: List[Task]) -> "TaskStatistics":
        """Calculate statistics from task list."""
        return cls(
            total=len(tasks),
            pending=len([t for t in tasks if t.status == TaskStatus.PENDING]),
            in_progress=len([t for t in tasks if t.status == TaskStatus.IN_PROGRESS]),
            paused=len([t for t in tasks if t.status == TaskStatus.PAUSED]),
            completed=len([t for t in tasks if t.status == TaskStatus.COMPLETED]),
            skipped=len([t for t in tasks if t.status == TaskStatus.SKIPPED]),
            failed=len([t for t in tasks if t.status == TaskStatus.FAILED]),
        )
