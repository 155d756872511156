# tests/fakes.py

from typing import List, Optional, Tuple

from taskloop.hooks.base import Hook, HookContext, HookPhase, HookResult
from taskloop.hooks.config import FailureMode, HookType
from taskloop.llm.client import Agent, AgentResult, AgentStatus, RunOptions


class FakeAgent(Agent):
    """
    Deterministic agent for unit tests.

    - Captures (prompt, options) for assertions
    - Returns a predefined result, or raises a predefined error
    """

    def __init__(
        self,
        name: str = "fake",
        available: bool = True,
        result: Optional[AgentResult] = None,
        error: Optional[Exception] = None,
    ):
        self._name = name
        self.available = available
        self.result = result or AgentResult(output="all good\nDONE", exit_code=0, status=AgentStatus.DONE)
        self.error = error
        self.calls: List[Tuple[str, RunOptions]] = []

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self.available

    def run(self, prompt: str, options: Optional[RunOptions] = None) -> AgentResult:
        self.calls.append((prompt, options or RunOptions()))
        if self.error is not None:
            raise self.error
        return self.result


class FakeHook(Hook):
    """Hook returning a fixed outcome, or raising, and counting executions."""

    def __init__(
        self,
        name: str,
        success: bool = True,
        failure_mode: FailureMode = FailureMode.WARN_CONTINUE,
        phase: HookPhase = HookPhase.PRE,
        raises: Optional[Exception] = None,
        exit_code: Optional[int] = None,
    ):
        self._name = name
        self._success = success
        self._exit_code = exit_code
        self._failure_mode = failure_mode
        self._phase = phase
        self.raises = raises
        self.executions = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def phase(self) -> HookPhase:
        return self._phase

    @property
    def type(self) -> HookType:
        return HookType.SHELL

    @property
    def failure_mode(self) -> FailureMode:
        return self._failure_mode

    def execute(self, context: Optional[HookContext]) -> HookResult:
        self.executions += 1
        if self.raises is not None:
            raise self.raises
        return HookResult(
            success=self._success,
            output=f"{self._name} output",
            error="" if self._success else f"{self._name} failed",
            exit_code=self._exit_code if self._exit_code is not None else (0 if self._success else 2),
            failure_mode=self._failure_mode,
        )
