"""Hooks that run shell commands."""

import logging
import os
import subprocess
from typing import Optional

from .base import BaseHook, HookContext, HookPhase, HookResult, expand_variables, hook_variables
from .config import HookDefinition
from ..core.exceptions import EmptyHookCommandError, MissingHookContextError

logger = logging.getLogger(__name__)

# Exit codes reported when the command never produced one of its own
TIMEOUT_EXIT_CODE = 124
SHELL_NOT_FOUND_EXIT_CODE = 127


class ShellHook(BaseHook):
    """
    Runs the hook's command with `sh -c`.

    ${VAR} placeholders in the command are expanded from the hook context,
    and the same variables are exported to the child environment.
    """

    def __init__(
        self,
        name: str,
        phase: HookPhase,
        definition: HookDefinition,
        timeout: Optional[float] = None,
        shell: str = "sh",
    ):
        super().__init__(name, phase, definition)
        self.timeout = timeout
        self.shell = shell

    def build_env(self, context: HookContext) -> dict:
        env = dict(os.environ)
        env.update(hook_variables(context))
        return env

    def execute(self, context: Optional[HookContext]) -> HookResult:
        """
        Run the command and capture its output.

        Raises:
            MissingHookContextError: If context is None
            EmptyHookCommandError: If no command is configured
        """
        if context is None:
            raise MissingHookContextError(self.name)
        if not self.definition.command:
            raise EmptyHookCommandError(self.name, "shell hook command")

        command = expand_variables(self.definition.command, context)
        cwd = context.project_dir if context.project_dir and os.path.isdir(context.project_dir) else None

        logger.debug("Hook %s: running %s", self.name, command)
        try:
            completed = subprocess.run(
                [self.shell, "-c", command],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=self.build_env(context),
                cwd=cwd,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = _combine_output(_as_text(e.stdout), _as_text(e.stderr))
            return self.create_result(
                False,
                output=output,
                error=f"command timed out after {self.timeout} seconds",
                exit_code=TIMEOUT_EXIT_CODE,
            )
        except FileNotFoundError as e:
            return self.create_result(
                False, error=f"shell not found: {e}", exit_code=SHELL_NOT_FOUND_EXIT_CODE
            )
        except OSError as e:
            return self.create_result(False, error=f"failed to start shell: {e}", exit_code=1)

        output = _combine_output(completed.stdout, completed.stderr)
        if completed.returncode != 0:
            return self.create_result(
                False,
                output=output,
                error=f"exit status {completed.returncode}",
                exit_code=completed.returncode,
            )
        return self.create_result(True, output=output)


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _combine_output(stdout: str, stderr: str) -> str:
    """Stripped stdout, then stripped stderr on a new line."""
    output = (stdout or "").strip()
    errors = (stderr or "").strip()
    if errors:
        output = f"{output}\n{errors}" if output else errors
    return output
