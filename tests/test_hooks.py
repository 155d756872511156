# tests/test_hooks.py

import shutil

import pytest

from taskloop.core.exceptions import (
    AgentTimeoutError,
    EmptyHookCommandError,
    MissingHookContextError,
)
from taskloop.hooks.agent_hook import AgentHook, AgentHookConfig
from taskloop.hooks.base import (
    HookContext,
    HookPhase,
    HookResult,
    build_post_task_context,
    build_pre_task_context,
    create_hooks_from_config,
    expand_variables,
)
from taskloop.hooks.config import FailureMode, HookDefinition, HookType, HooksConfig
from taskloop.hooks.manager import HookAction, HookManager, get_failed_hook_info
from taskloop.hooks.shell_hook import SHELL_NOT_FOUND_EXIT_CODE, TIMEOUT_EXIT_CODE, ShellHook
from taskloop.llm.client import AgentResult, AgentStatus
from taskloop.llm.registry import AgentRegistry
from taskloop.models.task import Task

from .fakes import FakeAgent, FakeHook

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")


@pytest.fixture()
def task() -> Task:
    return Task.new("TASK-1", "Write parser", "Parse the config file")


@pytest.fixture()
def post_context(task: Task, tmp_path) -> HookContext:
    result = AgentResult(output="finished\nDONE", exit_code=0, status=AgentStatus.DONE)
    return build_post_task_context(task, result, 3, str(tmp_path))


# ---- failure-mode policy ----

PREDICATES = ("should_abort", "should_skip_task", "should_ask_agent", "should_warn_and_continue")


@pytest.mark.parametrize("mode", list(FailureMode))
def test_success_never_triggers_policy(mode: FailureMode) -> None:
    result = HookResult(success=True, failure_mode=mode)

    assert result.is_success()
    assert not any(getattr(result, p)() for p in PREDICATES)


@pytest.mark.parametrize(
    "mode, expected",
    [
        (FailureMode.ABORT_LOOP, "should_abort"),
        (FailureMode.SKIP_TASK, "should_skip_task"),
        (FailureMode.ASK_AGENT, "should_ask_agent"),
        (FailureMode.WARN_CONTINUE, "should_warn_and_continue"),
    ],
)
def test_failure_triggers_exactly_one_predicate(mode: FailureMode, expected: str) -> None:
    result = HookResult(success=False, failure_mode=mode)

    assert [p for p in PREDICATES if getattr(result, p)()] == [expected]


@pytest.mark.parametrize(
    "mode, expected",
    [
        (FailureMode.ABORT_LOOP, "should_abort"),
        (FailureMode.SKIP_TASK, "should_skip_task"),
        (FailureMode.ASK_AGENT, "should_ask_agent"),
        (FailureMode.WARN_CONTINUE, "should_warn_and_continue"),
    ],
)
def test_nonzero_exit_code_is_a_failure_even_when_flagged_success(mode: FailureMode, expected: str) -> None:
    result = HookResult(success=True, exit_code=2, failure_mode=mode)

    assert not result.is_success()
    assert [p for p in PREDICATES if getattr(result, p)()] == [expected]


def test_default_failure_mode_is_warn_continue() -> None:
    assert HookResult(success=False).should_warn_and_continue()
    assert HookDefinition().on_failure == FailureMode.WARN_CONTINUE


# ---- variable expansion ----

def test_expand_variables_pre_task(task: Task) -> None:
    context = build_pre_task_context(task, 2, "/work")

    text = expand_variables("${TASK_ID} ${TASK_NAME} [${TASK_STATUS}] #${ITERATION} in ${PROJECT_DIR}", context)

    assert text == "TASK-1 Write parser [pending] #2 in /work"


def test_expand_variables_post_task(post_context: HookContext) -> None:
    text = expand_variables("${AGENT_STATUS}/${AGENT_EXIT_CODE}: ${AGENT_OUTPUT}", post_context)

    assert text == "DONE/0: finished\nDONE"


def test_expand_variables_leaves_unknown_tokens(task: Task) -> None:
    context = build_pre_task_context(task, 1, "")

    text = expand_variables("${UNKNOWN} ${TASK_ID ${AGENT_OUTPUT} $TASK_ID", context)

    assert text == "${UNKNOWN} ${TASK_ID ${AGENT_OUTPUT} $TASK_ID"


# ---- AgentHook ----

def _agent_hook(command: str, config: AgentHookConfig, **kwargs) -> AgentHook:
    definition = HookDefinition(type=HookType.AGENT, command=command, **kwargs)
    return AgentHook("post_task[0]", HookPhase.POST, definition, config)


def test_agent_hook_runs_expanded_prompt(registry: AgentRegistry, fake_agent: FakeAgent, post_context) -> None:
    hook = _agent_hook(
        "Review ${TASK_ID}: ${AGENT_OUTPUT}",
        AgentHookConfig(registry=registry, default_model="m-default", timeout=30),
        on_failure=FailureMode.ASK_AGENT,
    )

    result = hook.execute(post_context)

    assert result.is_success()
    assert result.failure_mode == FailureMode.ASK_AGENT
    prompt, options = fake_agent.calls[0]
    assert prompt == "Review TASK-1: finished\nDONE"
    assert options.model == "m-default"
    assert options.force is True
    assert options.timeout == 30


def test_agent_hook_model_from_definition_wins(registry, fake_agent, post_context) -> None:
    hook = _agent_hook("go", AgentHookConfig(registry=registry, default_model="m-default"), model="m-hook")

    hook.execute(post_context)

    assert fake_agent.calls[0][1].model == "m-hook"


def test_agent_hook_selection_priority(post_context) -> None:
    alpha, beta, gamma = FakeAgent("alpha"), FakeAgent("beta"), FakeAgent("gamma")
    registry = AgentRegistry()
    for agent in (alpha, beta, gamma):
        registry.register(agent)

    _agent_hook("go", AgentHookConfig(registry=registry, default_agent="beta"), agent="gamma").execute(post_context)
    _agent_hook("go", AgentHookConfig(registry=registry, default_agent="beta")).execute(post_context)
    _agent_hook("go", AgentHookConfig(registry=registry)).execute(post_context)

    assert (len(alpha.calls), len(beta.calls), len(gamma.calls)) == (1, 1, 1)


def test_agent_hook_requires_context(registry) -> None:
    hook = _agent_hook("go", AgentHookConfig(registry=registry))

    with pytest.raises(MissingHookContextError):
        hook.execute(None)


def test_agent_hook_requires_prompt(registry, post_context) -> None:
    hook = _agent_hook("", AgentHookConfig(registry=registry))

    with pytest.raises(EmptyHookCommandError):
        hook.execute(post_context)


def test_agent_hook_unavailable_agent_is_a_failed_result(post_context) -> None:
    registry = AgentRegistry()
    registry.register(FakeAgent("offline", available=False))
    hook = _agent_hook("go", AgentHookConfig(registry=registry, default_agent="offline"))

    result = hook.execute(post_context)

    assert not result.is_success()
    assert result.exit_code == 1
    assert "offline" in result.error


def test_agent_hook_without_registry_is_a_failed_result(post_context) -> None:
    result = _agent_hook("go", AgentHookConfig()).execute(post_context)

    assert not result.success
    assert result.exit_code == 1
    assert "registry" in result.error


def test_agent_hook_agent_error_is_absorbed(post_context) -> None:
    registry = AgentRegistry()
    registry.register(FakeAgent("slow", error=AgentTimeoutError(5)))
    hook = _agent_hook("go", AgentHookConfig(registry=registry), on_failure=FailureMode.ABORT_LOOP)

    result = hook.execute(post_context)

    assert result.should_abort()
    assert result.exit_code == 1
    assert "timed out" in result.error


def test_agent_hook_unexpected_agent_exception_is_absorbed(post_context) -> None:
    registry = AgentRegistry()
    registry.register(FakeAgent("buggy", error=RuntimeError("reader crashed")))
    hook = _agent_hook("go", AgentHookConfig(registry=registry))

    result = hook.execute(post_context)

    assert not result.success
    assert result.exit_code == 1
    assert result.error == "agent execution failed: reader crashed"


def test_agent_hook_non_success_status_fails(post_context) -> None:
    registry = AgentRegistry()
    registry.register(FakeAgent(result=AgentResult(output="more to do\nNEXT", status=AgentStatus.NEXT)))
    registry.register(FakeAgent("broken", result=AgentResult(output="", exit_code=3, status=AgentStatus.ERROR)))

    next_result = _agent_hook("go", AgentHookConfig(registry=registry, default_agent="fake")).execute(post_context)
    broken = _agent_hook("go", AgentHookConfig(registry=registry), agent="broken").execute(post_context)

    assert not next_result.success and next_result.exit_code == 0
    assert not broken.success and broken.exit_code == 3
    assert broken.error == "agent exited with code 3"


# ---- ShellHook ----

def _shell_hook(command: str, **kwargs) -> ShellHook:
    timeout = kwargs.pop("timeout", None)
    return ShellHook("pre_task[0]", HookPhase.PRE, HookDefinition(command=command, **kwargs), timeout=timeout)


@needs_sh
def test_shell_hook_expands_and_exports_variables(task: Task, tmp_path) -> None:
    context = build_pre_task_context(task, 4, str(tmp_path))

    result = _shell_hook('echo "start ${TASK_ID}"; echo "env $TASK_NAME #$ITERATION"').execute(context)

    assert result.is_success()
    assert result.output == "start TASK-1\nenv Write parser #4"


@needs_sh
def test_shell_hook_combines_stdout_and_stderr(task: Task) -> None:
    context = build_pre_task_context(task, 1, "")

    result = _shell_hook("echo out; echo err >&2").execute(context)

    assert result.output == "out\nerr"


@needs_sh
def test_shell_hook_failure_keeps_exit_code(task: Task) -> None:
    context = build_pre_task_context(task, 1, "")

    result = _shell_hook("echo broken >&2; exit 3", on_failure=FailureMode.SKIP_TASK).execute(context)

    assert not result.success
    assert result.exit_code == 3
    assert result.output == "broken"
    assert result.should_skip_task()


@needs_sh
def test_shell_hook_timeout(task: Task) -> None:
    context = build_pre_task_context(task, 1, "")

    result = _shell_hook("sleep 5", timeout=0.2).execute(context)

    assert not result.success
    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert "timed out" in result.error


@needs_sh
def test_shell_hook_replaces_undecodable_output(task: Task) -> None:
    context = build_pre_task_context(task, 1, "")

    result = _shell_hook("printf '\\377\\376ok'").execute(context)

    assert result.is_success()
    assert result.output == "\ufffd\ufffdok"


def test_shell_hook_missing_shell(task: Task, tmp_path) -> None:
    hook = ShellHook(
        "pre_task[0]", HookPhase.PRE, HookDefinition(command="true"), shell=str(tmp_path / "no-shell")
    )

    result = hook.execute(build_pre_task_context(task, 1, ""))

    assert not result.success
    assert result.exit_code == SHELL_NOT_FOUND_EXIT_CODE


def test_shell_hook_requires_context_and_command(task: Task) -> None:
    with pytest.raises(MissingHookContextError):
        _shell_hook("true").execute(None)
    with pytest.raises(EmptyHookCommandError):
        _shell_hook("").execute(build_pre_task_context(task, 1, ""))


# ---- hook construction ----

def test_create_hooks_from_config(registry) -> None:
    config = HooksConfig(
        pre_task=[HookDefinition(command="make lint")],
        post_task=[
            HookDefinition(type=HookType.AGENT, command="review"),
            HookDefinition(command="make test", on_failure=FailureMode.ABORT_LOOP),
        ],
    )

    pre, post = create_hooks_from_config(config, AgentHookConfig(registry=registry), shell_timeout=10)

    assert [h.name for h in pre] == ["pre_task[0]"]
    assert [h.name for h in post] == ["post_task[0]", "post_task[1]"]
    assert isinstance(pre[0], ShellHook) and pre[0].timeout == 10
    assert isinstance(post[0], AgentHook) and post[0].config.registry is registry
    assert post[1].phase == HookPhase.POST
    assert post[1].failure_mode == FailureMode.ABORT_LOOP


# ---- HookManager ----

def test_manager_runs_all_hooks_on_success(task: Task) -> None:
    hooks = [FakeHook("a"), FakeHook("b")]
    manager = HookManager(pre_hooks=hooks)

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert result.all_success
    assert result.action == HookAction.CONTINUE
    assert len(result.results) == 2
    assert result.failed_hook is None


def test_manager_continues_past_warn_failures(task: Task) -> None:
    hooks = [FakeHook("warn", success=False), FakeHook("after")]
    manager = HookManager(pre_hooks=hooks)

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert not result.all_success
    assert result.action == HookAction.CONTINUE
    assert hooks[1].executions == 1
    assert get_failed_hook_info(result) == ""


@pytest.mark.parametrize(
    "mode, action",
    [
        (FailureMode.ABORT_LOOP, HookAction.ABORT_LOOP),
        (FailureMode.SKIP_TASK, HookAction.SKIP_TASK),
        (FailureMode.ASK_AGENT, HookAction.ASK_AGENT),
    ],
)
def test_manager_stops_on_blocking_failure(task: Task, mode: FailureMode, action: HookAction) -> None:
    failing = FakeHook("gate", success=False, failure_mode=mode, phase=HookPhase.POST)
    after = FakeHook("after", phase=HookPhase.POST)
    manager = HookManager(post_hooks=[failing, after])

    result = manager.execute_post_task_hooks(build_post_task_context(task, None, 1, ""))

    assert result.action == action
    assert result.failed_hook is failing
    assert after.executions == 0
    assert len(result.results) == 1


def test_manager_turns_hook_errors_into_abort(task: Task) -> None:
    broken = FakeHook("broken", raises=EmptyHookCommandError("broken"))
    manager = HookManager(pre_hooks=[broken, FakeHook("after")])

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert result.action == HookAction.ABORT_LOOP
    assert result.failed_result.failure_mode == FailureMode.ABORT_LOOP
    assert result.failed_result.error.startswith("execution error:")


def test_manager_turns_unexpected_exceptions_into_abort(task: Task) -> None:
    manager = HookManager(pre_hooks=[FakeHook("broken", raises=ValueError("bad state")), FakeHook("after")])

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert result.action == HookAction.ABORT_LOOP
    assert result.failed_result.error == "execution error: bad state"
    assert manager.pre_hooks[1].executions == 0


def test_manager_treats_nonzero_exit_as_failure(task: Task) -> None:
    gate = FakeHook("gate", success=True, exit_code=2, failure_mode=FailureMode.ABORT_LOOP)
    manager = HookManager(pre_hooks=[gate, FakeHook("after")])

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert not result.all_success
    assert result.action == HookAction.ABORT_LOOP
    assert result.failed_hook is gate


@needs_sh
def test_manager_survives_undecodable_shell_output(task: Task) -> None:
    hook = ShellHook(
        "pre_task[0]", HookPhase.PRE,
        HookDefinition(command="printf '\\377\\376'; exit 1", on_failure=FailureMode.SKIP_TASK),
    )
    manager = HookManager(pre_hooks=[hook])

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert result.action == HookAction.SKIP_TASK
    assert result.failed_result.exit_code == 1
    assert result.failed_result.output == "\ufffd\ufffd"


def test_failed_hook_info_format(task: Task) -> None:
    failing = FakeHook("gate", success=False, failure_mode=FailureMode.ASK_AGENT)
    manager = HookManager(pre_hooks=[failing])

    result = manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))

    assert get_failed_hook_info(result) == (
        "Hook 'gate' (type: shell, phase: pre) failed with exit code 2.\n"
        "Error: gate failed\n"
        "Output: gate output"
    )


def test_manager_records_results_in_task_logger(task: Task, tmp_path) -> None:
    from taskloop.core.logger import TaskLogger

    task_logger = TaskLogger(log_dir=str(tmp_path), console=False)
    manager = HookManager(pre_hooks=[FakeHook("a"), FakeHook("b", success=False)], task_logger=task_logger)

    manager.execute_pre_task_hooks(build_pre_task_context(task, 1, ""))
    task_logger.close()

    lines = next(tmp_path.glob("hooks_*.jsonl")).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2


def test_manager_from_config() -> None:
    config = HooksConfig(pre_task=[HookDefinition(command="true")])

    manager = HookManager.from_config(config)

    assert manager.has_pre_task_hooks()
    assert not manager.has_post_task_hooks()
