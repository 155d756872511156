"""Abstract base class for coding agents."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any


class AgentStatus(str, Enum):
    """Status marker reported by an agent at the end of its output."""
    NEXT = "NEXT"
    DONE = "DONE"
    ERROR = "ERROR"
    FIXED = "FIXED"
    UNKNOWN = "UNKNOWN"

    def is_success(self) -> bool:
        return self in (AgentStatus.DONE, AgentStatus.FIXED)

    def is_terminal(self) -> bool:
        return self in (AgentStatus.DONE, AgentStatus.ERROR)


@dataclass
class RunOptions:
    """Options for a single agent run."""
    model: str = ""
    work_dir: str = ""
    timeout: Optional[float] = None
    force: bool = False
    session_id: str = ""
    # Object with write(str)/close(), e.g. TaskLogger.start_agent_command_stream()
    log_stream: Optional[Any] = None


@dataclass
class AgentResult:
    """Outcome of an agent run."""
    output: str = ""
    exit_code: int = 0
    status: AgentStatus = AgentStatus.UNKNOWN
    session_id: str = ""
    error: str = ""
    duration: float = 0.0

    def is_success(self) -> bool:
        return self.exit_code == 0 and self.status.is_success()


class Agent(ABC):
    """Abstract base class for agents.

    This interface allows switching between different agent backends
    (Cursor CLI, other CLIs, test fakes).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique agent name, e.g. "cursor"."""

    @property
    def description(self) -> str:
        return self.name

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the agent is installed and usable."""

    @abstractmethod
    def run(self, prompt: str, options: Optional[RunOptions] = None) -> AgentResult:
        """
        Run the agent on a prompt.

        Args:
            prompt: Prompt string
            options: Run options

        Returns:
            AgentResult with output, exit code and parsed status

        Raises:
            AgentError: If the agent could not be invoked
        """

    @property
    def last_session_id(self) -> str:
        return ""
