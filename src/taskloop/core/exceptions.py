"""Custom exceptions for the task loop system."""

from typing import Optional


class TaskLoopError(Exception):
    """Base exception for task loop errors."""

    def __init__(self, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        """
        Initialize task loop error.

        Args:
            message: Error message
            retryable: Whether this error is retryable by the caller
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.retryable = retryable
        self.original_error = original_error


class StateError(TaskLoopError):
    """Error related to state persistence."""

    def __init__(self, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        super().__init__(message, retryable=retryable, original_error=original_error)


class CorruptStoreError(StateError):
    """Error when the task store file cannot be parsed."""

    def __init__(self, path: str, original_error: Optional[Exception] = None):
        message = f"Task store corrupted: {path}"
        if original_error is not None:
            message = f"{message} ({original_error})"
        super().__init__(message, retryable=False, original_error=original_error)
        self.path = path


class TaskError(TaskLoopError):
    """Error related to a specific task."""

    def __init__(self, task_id: str, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        full_message = f"Task {task_id}: {message}"
        super().__init__(full_message, retryable=retryable, original_error=original_error)
        self.task_id = task_id


class TaskNotFoundError(TaskError):
    """Task ID is not present in the store."""

    def __init__(self, task_id: str):
        super().__init__(task_id, "not found")


class DuplicateTaskError(TaskError):
    """Task ID already exists in the store."""

    def __init__(self, task_id: str):
        super().__init__(task_id, "already exists")


class InvalidTaskError(TaskError):
    """Task failed validation."""

    def __init__(self, task_id: str, reason: str):
        super().__init__(task_id, f"invalid task: {reason}")
        self.reason = reason


class NoActiveIterationError(TaskError):
    """No iteration has been started for the task."""

    def __init__(self, task_id: str):
        super().__init__(task_id, "no active iteration to end")


class IterationAlreadyCompleteError(TaskError):
    """The current iteration was already closed."""

    def __init__(self, task_id: str, number: int):
        super().__init__(task_id, f"iteration {number} is already complete")
        self.number = number


class TaskNotPausedError(TaskError):
    """Resume was requested for a task that is not paused."""

    def __init__(self, task_id: str, status: str):
        super().__init__(task_id, f"is not paused (status: {status})")
        self.status = status


class HookError(TaskLoopError):
    """Error raised by hook execution itself (not a hook failure)."""


class MissingHookContextError(HookError):
    """Hook was executed without a context."""

    def __init__(self, hook_name: str):
        super().__init__(f"Hook {hook_name}: hook context is required")
        self.hook_name = hook_name


class EmptyHookCommandError(HookError):
    """Hook has no command or prompt configured."""

    def __init__(self, hook_name: str, kind: str = "command"):
        super().__init__(f"Hook {hook_name}: {kind} is empty")
        self.hook_name = hook_name


class AgentError(TaskLoopError):
    """Error related to agent invocation."""

    def __init__(self, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        super().__init__(message, retryable=retryable, original_error=original_error)


class AgentNotFoundError(AgentError):
    """No agent with the requested name is registered."""

    def __init__(self, name: str):
        super().__init__(f"Agent not found: {name}")
        self.name = name


class NoAgentsAvailableError(AgentError):
    """No registered agent is installed on this system."""

    def __init__(self):
        super().__init__("No agents available")


class AgentUnavailableError(AgentError):
    """Agent is registered but not installed or not runnable."""

    def __init__(self, name: str, original_error: Optional[Exception] = None):
        super().__init__(f"Agent {name!r} is not available", original_error=original_error)
        self.name = name


class AgentTimeoutError(AgentError):
    """Agent invocation exceeded its timeout."""

    def __init__(self, timeout: float, original_error: Optional[Exception] = None):
        message = f"Agent call timed out after {timeout} seconds"
        super().__init__(message, retryable=True, original_error=original_error)
        self.timeout = timeout


class ConfigError(TaskLoopError):
    """Invalid configuration value."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
