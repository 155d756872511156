"""Core utilities for the taskloop system."""

from .exceptions import (
    TaskLoopError,
    StateError,
    CorruptStoreError,
    TaskError,
    TaskNotFoundError,
    DuplicateTaskError,
    InvalidTaskError,
    NoActiveIterationError,
    IterationAlreadyCompleteError,
    TaskNotPausedError,
    HookError,
    MissingHookContextError,
    EmptyHookCommandError,
    AgentError,
    AgentNotFoundError,
    NoAgentsAvailableError,
    AgentUnavailableError,
    AgentTimeoutError,
    ConfigError,
)
from .locks import ReadWriteLock
from .logger import TaskLogger

__all__ = [
    # Exceptions
    "TaskLoopError",
    "StateError",
    "CorruptStoreError",
    "TaskError",
    "TaskNotFoundError",
    "DuplicateTaskError",
    "InvalidTaskError",
    "NoActiveIterationError",
    "IterationAlreadyCompleteError",
    "TaskNotPausedError",
    "HookError",
    "MissingHookContextError",
    "EmptyHookCommandError",
    "AgentError",
    "AgentNotFoundError",
    "NoAgentsAvailableError",
    "AgentUnavailableError",
    "AgentTimeoutError",
    "ConfigError",
    # Locks
    "ReadWriteLock",
    # Logger
    "TaskLogger",
]
