"""Pre-task and post-task hooks."""

from .config import (
    HookType,
    FailureMode,
    HookDefinition,
    HooksConfig,
    load_hooks_config,
)
from .base import (
    HookPhase,
    HookContext,
    HookResult,
    Hook,
    BaseHook,
    build_pre_task_context,
    build_post_task_context,
    expand_variables,
    create_hook,
    create_hooks_from_config,
)
from .agent_hook import AgentHook, AgentHookConfig
from .shell_hook import ShellHook
from .manager import HookManager, HookManagerResult, HookAction, get_failed_hook_info

__all__ = [
    # Configuration
    "HookType",
    "FailureMode",
    "HookDefinition",
    "HooksConfig",
    "load_hooks_config",
    # Hook interface
    "HookPhase",
    "HookContext",
    "HookResult",
    "Hook",
    "BaseHook",
    "build_pre_task_context",
    "build_post_task_context",
    "expand_variables",
    "create_hook",
    "create_hooks_from_config",
    # Implementations
    "AgentHook",
    "AgentHookConfig",
    "ShellHook",
    # Execution
    "HookManager",
    "HookManagerResult",
    "HookAction",
    "get_failed_hook_info",
]
