"""Runs configured hooks and turns their failures into loop actions."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .agent_hook import AgentHookConfig
from .base import (
    Hook,
    HookContext,
    HookPhase,
    HookResult,
    create_hooks_from_config,
)
from .config import FailureMode, HooksConfig
from ..core.logger import TaskLogger

logger = logging.getLogger(__name__)


class HookAction(str, Enum):
    """What the control loop should do after a hook phase."""
    CONTINUE = "continue"
    SKIP_TASK = "skip_task"
    ABORT_LOOP = "abort_loop"
    ASK_AGENT = "ask_agent"


@dataclass
class HookManagerResult:
    """Aggregate outcome of one hook phase."""
    all_success: bool = True
    results: List[HookResult] = field(default_factory=list)
    action: HookAction = HookAction.CONTINUE
    failed_hook: Optional[Hook] = None
    failed_result: Optional[HookResult] = None


class HookManager:
    """
    Executes pre-task and post-task hooks in order.

    A failing hook configured with warn_continue lets the phase go on.
    The first failure with abort_loop, skip_task or ask_agent stops the
    phase and is reported as the result's action.
    """

    def __init__(
        self,
        pre_hooks: Optional[List[Hook]] = None,
        post_hooks: Optional[List[Hook]] = None,
        task_logger: Optional[TaskLogger] = None,
    ):
        self.pre_hooks = list(pre_hooks or [])
        self.post_hooks = list(post_hooks or [])
        self.task_logger = task_logger

    @classmethod
    def from_config(
        cls,
        hooks_config: HooksConfig,
        agent_config: Optional[AgentHookConfig] = None,
        task_logger: Optional[TaskLogger] = None,
        shell_timeout: Optional[float] = None,
    ) -> "HookManager":
        pre_hooks, post_hooks = create_hooks_from_config(hooks_config, agent_config, shell_timeout)
        return cls(pre_hooks, post_hooks, task_logger)

    def has_pre_task_hooks(self) -> bool:
        return bool(self.pre_hooks)

    def has_post_task_hooks(self) -> bool:
        return bool(self.post_hooks)

    def execute_pre_task_hooks(self, context: HookContext) -> HookManagerResult:
        return self._execute(self.pre_hooks, context, HookPhase.PRE)

    def execute_post_task_hooks(self, context: HookContext) -> HookManagerResult:
        return self._execute(self.post_hooks, context, HookPhase.POST)

    def _execute(self, hooks: List[Hook], context: HookContext, phase: HookPhase) -> HookManagerResult:
        result = HookManagerResult()

        for hook in hooks:
            try:
                hook_result = hook.execute(context)
            except Exception as e:
                # A hook that cannot run at all stops the loop.
                hook_result = HookResult(
                    success=False,
                    error=f"execution error: {e}",
                    exit_code=1,
                    failure_mode=FailureMode.ABORT_LOOP,
                )
                logger.error("Hook %s could not be executed: %s", hook.name, e)

            result.results.append(hook_result)
            if self.task_logger is not None:
                self.task_logger.log_hook_result(phase.value, hook.name, hook_result)

            if hook_result.is_success():
                continue

            result.all_success = False
            if hook_result.should_warn_and_continue():
                logger.warning("Hook %s failed, continuing: %s", hook.name, hook_result.error)
                continue

            if hook_result.should_abort():
                result.action = HookAction.ABORT_LOOP
            elif hook_result.should_skip_task():
                result.action = HookAction.SKIP_TASK
            elif hook_result.should_ask_agent():
                result.action = HookAction.ASK_AGENT
            result.failed_hook = hook
            result.failed_result = hook_result
            return result

        return result


def get_failed_hook_info(result: HookManagerResult) -> str:
    """Describe the hook that stopped a phase, for use in an agent prompt."""
    if result.failed_hook is None or result.failed_result is None:
        return ""
    hook = result.failed_hook
    failed = result.failed_result
    return (
        f"Hook '{hook.name}' (type: {hook.type.value}, phase: {hook.phase.value}) "
        f"failed with exit code {failed.exit_code}.\n"
        f"Error: {failed.error}\n"
        f"Output: {failed.output}"
    )
