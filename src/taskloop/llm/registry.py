"""Registry of known agents."""

import threading
from typing import Dict, List, Optional

from .client import Agent
from ..core.exceptions import (
    AgentError,
    AgentNotFoundError,
    AgentUnavailableError,
    NoAgentsAvailableError,
)


class AgentRegistry:
    """Thread-safe name -> Agent mapping."""

    def __init__(self):
        self._agents: Dict[str, Agent] = {}
        self._lock = threading.Lock()

    def register(self, agent: Agent) -> None:
        """
        Register an agent under its name.

        Raises:
            AgentError: If an agent with the same name is already registered
        """
        with self._lock:
            if agent.name in self._agents:
                raise AgentError(f"Agent already registered: {agent.name}")
            self._agents[agent.name] = agent

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._agents:
                raise AgentNotFoundError(name)
            del self._agents[name]

    def get(self, name: str) -> Optional[Agent]:
        with self._lock:
            return self._agents.get(name)

    def all(self) -> List[Agent]:
        """All agents sorted by name."""
        with self._lock:
            return [self._agents[n] for n in sorted(self._agents)]

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._agents)

    def available(self) -> List[Agent]:
        """Available agents sorted by name."""
        return [a for a in self.all() if a.is_available()]

    def select_agent(self, name: str = "") -> Agent:
        """
        Pick an agent to run.

        A named agent must exist and be available. Without a name, the only
        available agent is returned; several available agents are ambiguous.

        Raises:
            AgentNotFoundError, AgentUnavailableError, NoAgentsAvailableError, AgentError
        """
        if name:
            agent = self.get(name)
            if agent is None:
                raise AgentNotFoundError(name)
            if not agent.is_available():
                raise AgentUnavailableError(name)
            return agent

        available = self.available()
        if not available:
            raise NoAgentsAvailableError()
        if len(available) > 1:
            names = ", ".join(a.name for a in available)
            raise AgentError(f"Multiple agents available, specify one: {names}")
        return available[0]

    def get_or_default(self, name: str = "") -> Agent:
        """
        Return the named agent, or the first available agent by name.

        Raises:
            AgentNotFoundError: If a named agent is not registered
            NoAgentsAvailableError: If no name is given and none is available
        """
        if name:
            agent = self.get(name)
            if agent is None:
                raise AgentNotFoundError(name)
            return agent

        available = self.available()
        if not available:
            raise NoAgentsAvailableError()
        return available[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)
