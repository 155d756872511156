"""Hook interface, execution context and failure-mode policy."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from .config import FailureMode, HookDefinition, HookType, HooksConfig
from ..llm.client import AgentResult
from ..models.task import Task, TaskStatus

if TYPE_CHECKING:
    from .agent_hook import AgentHookConfig


class HookPhase(str, Enum):
    """When a hook runs relative to the task."""
    PRE = "pre"
    POST = "post"


@dataclass
class HookContext:
    """Information available to a hook while it runs."""
    task: Optional[Task] = None
    # Agent result; only set for post-task hooks
    result: Optional[AgentResult] = None
    iteration: int = 0
    project_dir: str = ""


def build_pre_task_context(task: Task, iteration: int, project_dir: str) -> HookContext:
    return HookContext(task=task, iteration=iteration, project_dir=project_dir)


def build_post_task_context(
    task: Task, result: Optional[AgentResult], iteration: int, project_dir: str
) -> HookContext:
    return HookContext(task=task, result=result, iteration=iteration, project_dir=project_dir)


def hook_variables(context: HookContext) -> Dict[str, str]:
    """Variables exposed to hook commands and prompts."""
    variables = {}
    if context.task is not None:
        status = context.task.status
        variables["TASK_ID"] = context.task.id
        variables["TASK_NAME"] = context.task.name
        variables["TASK_DESCRIPTION"] = context.task.description
        variables["TASK_STATUS"] = status.value if isinstance(status, TaskStatus) else str(status)

    variables["ITERATION"] = str(context.iteration)
    variables["PROJECT_DIR"] = context.project_dir

    if context.result is not None:
        variables["AGENT_OUTPUT"] = context.result.output
        variables["AGENT_EXIT_CODE"] = str(context.result.exit_code)
        variables["AGENT_STATUS"] = context.result.status.value
    return variables


def expand_variables(text: str, context: HookContext) -> str:
    """
    Replace ${NAME} placeholders with values from the hook context.

    Replacement is plain text substitution; unknown or malformed
    placeholders are left as they are.
    """
    for key, value in hook_variables(context).items():
        text = text.replace("${" + key + "}", value)
    return text


@dataclass
class HookResult:
    """Outcome of a hook execution plus the failure mode it was configured with."""
    success: bool
    output: str = ""
    error: str = ""
    exit_code: int = 0
    failure_mode: FailureMode = FailureMode.WARN_CONTINUE

    def is_success(self) -> bool:
        """A result succeeds only when flagged successful with exit code 0."""
        return self.success and self.exit_code == 0

    def should_abort(self) -> bool:
        return not self.is_success() and self.failure_mode == FailureMode.ABORT_LOOP

    def should_skip_task(self) -> bool:
        return not self.is_success() and self.failure_mode == FailureMode.SKIP_TASK

    def should_ask_agent(self) -> bool:
        return not self.is_success() and self.failure_mode == FailureMode.ASK_AGENT

    def should_warn_and_continue(self) -> bool:
        return not self.is_success() and self.failure_mode == FailureMode.WARN_CONTINUE


class Hook(ABC):
    """A pre- or post-task action."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def phase(self) -> HookPhase:
        pass

    @property
    @abstractmethod
    def type(self) -> HookType:
        pass

    @property
    @abstractmethod
    def failure_mode(self) -> FailureMode:
        pass

    @abstractmethod
    def execute(self, context: Optional[HookContext]) -> HookResult:
        """
        Run the hook.

        Failures of the hook's own work are reported in the returned
        HookResult. Exceptions are reserved for misuse, such as a missing
        context or an empty command.
        """


class BaseHook(Hook):
    """Common state shared by hook implementations."""

    def __init__(self, name: str, phase: HookPhase, definition: HookDefinition):
        self._name = name
        self._phase = phase
        self.definition = definition

    @property
    def name(self) -> str:
        return self._name

    @property
    def phase(self) -> HookPhase:
        return self._phase

    @property
    def type(self) -> HookType:
        return self.definition.type

    @property
    def failure_mode(self) -> FailureMode:
        return self.definition.on_failure or FailureMode.WARN_CONTINUE

    def create_result(self, success: bool, output: str = "", error: str = "", exit_code: int = 0) -> HookResult:
        return HookResult(
            success=success,
            output=output,
            error=error,
            exit_code=exit_code,
            failure_mode=self.failure_mode,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, phase={self.phase.value!r})"


def create_hook(
    name: str,
    phase: HookPhase,
    definition: HookDefinition,
    agent_config: Optional["AgentHookConfig"] = None,
    shell_timeout: Optional[float] = None,
) -> Hook:
    """Build the hook implementation matching definition.type."""
    from .agent_hook import AgentHook, AgentHookConfig
    from .shell_hook import ShellHook

    if definition.type == HookType.AGENT:
        return AgentHook(name, phase, definition, agent_config or AgentHookConfig())
    return ShellHook(name, phase, definition, timeout=shell_timeout)


def create_hooks_from_config(
    hooks_config: HooksConfig,
    agent_config: Optional["AgentHookConfig"] = None,
    shell_timeout: Optional[float] = None,
) -> Tuple[List[Hook], List[Hook]]:
    """
    Build pre-task and post-task hooks from configuration.

    Hooks are named after their position, e.g. "pre_task[0]".

    Returns:
        (pre_hooks, post_hooks)
    """
    pre_hooks = [
        create_hook(f"pre_task[{i}]", HookPhase.PRE, definition, agent_config, shell_timeout)
        for i, definition in enumerate(hooks_config.pre_task)
    ]
    post_hooks = [
        create_hook(f"post_task[{i}]", HookPhase.POST, definition, agent_config, shell_timeout)
        for i, definition in enumerate(hooks_config.post_task)
    ]
    return pre_hooks, post_hooks
