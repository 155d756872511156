"""Hooks that run a prompt through a coding agent."""

import logging
from dataclasses import dataclass
from typing import Optional

from .base import BaseHook, HookContext, HookPhase, HookResult, expand_variables
from .config import HookDefinition
from ..core.exceptions import AgentError, EmptyHookCommandError, MissingHookContextError
from ..llm.client import Agent, RunOptions
from ..llm.registry import AgentRegistry

logger = logging.getLogger(__name__)


@dataclass
class AgentHookConfig:
    """Settings shared by all agent hooks."""
    registry: Optional[AgentRegistry] = None
    default_agent: str = ""
    default_model: str = ""
    work_dir: str = ""
    timeout: Optional[float] = None


class AgentHook(BaseHook):
    """Runs the hook's command as an agent prompt."""

    def __init__(
        self,
        name: str,
        phase: HookPhase,
        definition: HookDefinition,
        config: Optional[AgentHookConfig] = None,
    ):
        super().__init__(name, phase, definition)
        self.config = config or AgentHookConfig()

    def select_agent(self) -> Agent:
        """
        Choose the agent for this hook.
        Priority: hook's agent, then the configured default, then the registry's default.

        Raises:
            AgentError: If no usable agent can be selected
        """
        registry = self.config.registry
        if registry is None:
            raise AgentError("agent registry is not configured")

        agent_name = self.definition.agent or self.config.default_agent
        if agent_name:
            return registry.select_agent(agent_name)
        return registry.get_or_default("")

    def execute(self, context: Optional[HookContext]) -> HookResult:
        """
        Run the agent with the expanded prompt.

        Agent selection and invocation problems are returned as a failed
        result with exit code 1.

        Raises:
            MissingHookContextError: If context is None
            EmptyHookCommandError: If no prompt is configured
        """
        if context is None:
            raise MissingHookContextError(self.name)
        if not self.definition.command:
            raise EmptyHookCommandError(self.name, "agent hook prompt (command)")

        prompt = expand_variables(self.definition.command, context)

        try:
            agent = self.select_agent()
        except AgentError as e:
            return self.create_result(False, error=f"failed to select agent: {e}", exit_code=1)

        if not agent.is_available():
            return self.create_result(False, error=f"agent {agent.name!r} is not available", exit_code=1)

        options = RunOptions(
            model=self.definition.model or self.config.default_model,
            work_dir=self.config.work_dir or context.project_dir,
            timeout=self.config.timeout,
            force=True,
        )

        logger.debug("Hook %s: running agent %s", self.name, agent.name)
        try:
            result = agent.run(prompt, options)
        except AgentError as e:
            return self.create_result(False, error=f"agent execution failed: {e}", exit_code=1)
        except Exception as e:
            logger.error("Hook %s: unexpected agent error: %s", self.name, e)
            return self.create_result(False, error=f"agent execution failed: {e}", exit_code=1)

        success = result.is_success()
        error = ""
        if not success:
            error = result.error
            if not error and result.exit_code != 0:
                error = f"agent exited with code {result.exit_code}"
            elif not error:
                error = f"agent reported status {result.status.value}"
        return self.create_result(success, output=result.output, error=error, exit_code=result.exit_code)
