"""Command-line entry point for inspecting and steering the task store."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core.exceptions import TaskLoopError, TaskNotFoundError
from .core.logger import TaskLogger
from .hooks.agent_hook import AgentHookConfig
from .hooks.base import build_post_task_context, build_pre_task_context
from .hooks.config import load_hooks_config
from .hooks.manager import HookAction, HookManager
from .llm.cursor_cli import CursorCLIAgent
from .llm.registry import AgentRegistry
from .models.task import Task, TaskStatus
from .scheduler.manager import TaskManager
from .state.store import TaskStore


def _status_value(task: Task) -> str:
    return task.status.value if isinstance(task.status, TaskStatus) else str(task.status)


def _print_task_line(task: Task) -> None:
    print(f"{task.order:>4}  {task.id:<16} {_status_value(task):<12} {task.iteration_count():>3}  {task.name}")


def cmd_status(manager: TaskManager, args: argparse.Namespace) -> int:
    stats = manager.statistics()
    completed, total = manager.progress()
    print(f"Tasks: {completed}/{total} completed, {stats.remaining} remaining")
    print(
        f"  pending={stats.pending} in_progress={stats.in_progress} paused={stats.paused} "
        f"completed={stats.completed} skipped={stats.skipped} failed={stats.failed}"
    )
    task = manager.get_next()
    print(f"Next: {task.id} ({task.name})" if task else "Next: none")
    return 0


def cmd_list(manager: TaskManager, args: argparse.Namespace) -> int:
    tasks = manager.all()
    if args.status:
        tasks = [t for t in tasks if _status_value(t) == args.status]
    for task in tasks:
        _print_task_line(task)
    return 0


def cmd_next(manager: TaskManager, args: argparse.Namespace) -> int:
    task = manager.get_next()
    if task is None:
        print("No runnable task")
        return 0
    _print_task_line(task)
    return 0


def cmd_add(manager: TaskManager, args: argparse.Namespace) -> int:
    task = Task.new(args.task_id, args.name, args.description or "")
    task.order = args.order
    task.validate()
    manager.add_task(task)
    manager.save()
    print(f"Added {args.task_id}")
    return 0


def _transition(method_name: str, verb: str):
    def run(manager: TaskManager, args: argparse.Namespace) -> int:
        getattr(manager, method_name)(args.task_id)
        manager.save()
        print(f"{verb} {args.task_id}")
        return 0
    return run


def cmd_resume(manager: TaskManager, args: argparse.Namespace) -> int:
    iteration = manager.resume(args.task_id)
    manager.save()
    print(f"Resumed {args.task_id} (iteration {iteration.number})")
    return 0


def cmd_reorder(manager: TaskManager, args: argparse.Namespace) -> int:
    manager.reorder(args.task_ids)
    manager.save()
    for task in manager.all():
        _print_task_line(task)
    return 0


def cmd_hooks(manager: TaskManager, args: argparse.Namespace) -> int:
    path = Path(args.hooks_file) if args.hooks_file else config.hooks_path(args.project_root)
    hooks_config = load_hooks_config(path)
    if hooks_config.is_empty():
        print(f"No hooks configured ({path})")
        return 0
    for phase, definitions in (("pre_task", hooks_config.pre_task), ("post_task", hooks_config.post_task)):
        for i, definition in enumerate(definitions):
            target = f" agent={definition.agent}" if definition.agent else ""
            print(
                f"{phase}[{i}] type={definition.type.value} on_failure={definition.on_failure.value}"
                f"{target}: {definition.command}"
            )
    return 0


def build_hook_manager(
    project_root: Path,
    hooks_file: Optional[Path] = None,
    task_logger: Optional[TaskLogger] = None,
) -> HookManager:
    """Build hooks from the hook file, with agent and timeout defaults from the environment."""
    path = hooks_file or config.hooks_path(project_root)
    registry = AgentRegistry()
    registry.register(CursorCLIAgent(default_model=config.DEFAULT_MODEL))
    agent_config = AgentHookConfig(
        registry=registry,
        default_agent=config.DEFAULT_AGENT,
        default_model=config.DEFAULT_MODEL,
        work_dir=str(project_root),
        timeout=config.HOOK_TIMEOUT_SECONDS,
    )
    return HookManager.from_config(
        load_hooks_config(path), agent_config, task_logger, shell_timeout=config.HOOK_TIMEOUT_SECONDS
    )


def cmd_run_hooks(manager: TaskManager, args: argparse.Namespace) -> int:
    task = manager.get_by_id(args.task_id)
    if task is None:
        raise TaskNotFoundError(args.task_id)

    hook_manager = build_hook_manager(
        args.project_root, Path(args.hooks_file) if args.hooks_file else None, manager.task_logger
    )
    project_dir = str(args.project_root)
    if args.phase == "pre":
        hooks = hook_manager.pre_hooks
        outcome = hook_manager.execute_pre_task_hooks(
            build_pre_task_context(task, task.iteration_count(), project_dir)
        )
    else:
        hooks = hook_manager.post_hooks
        outcome = hook_manager.execute_post_task_hooks(
            build_post_task_context(task, None, task.iteration_count(), project_dir)
        )

    # Results stop at the hook that ended the phase.
    for hook, result in zip(hooks, outcome.results):
        state = "ok" if result.is_success() else f"failed: {result.error}"
        print(f"{hook.name} exit={result.exit_code} {state}")
    print(f"Action: {outcome.action.value}")
    return 0 if outcome.action == HookAction.CONTINUE else 1


def cmd_dashboard(manager: TaskManager, args: argparse.Namespace) -> int:
    from .dashboard.app import TaskLoopDashboard

    app = TaskLoopDashboard(
        manager,
        log_dir=config.log_dir(args.project_root),
        refresh_seconds=config.DASHBOARD_REFRESH_SECONDS,
        reload_store=True,
    )
    app.run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskloop",
        description="Inspect and steer the task loop's task store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  taskloop status
  taskloop list --status pending
  taskloop skip TASK-003
  taskloop reorder TASK-005 TASK-002
  taskloop run-hooks pre TASK-001
        """
    )
    parser.add_argument('--project-root', type=Path, default=None, help='Project directory (default: PROJECT_ROOT)')
    parser.add_argument('--tasks-file', type=Path, default=None, help='Task store file (default: <state dir>/tasks.json)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Also log to the console')

    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('status', help='Show progress and the next task').set_defaults(func=cmd_status)

    p = sub.add_parser('list', help='List tasks in order')
    p.add_argument('--status', choices=[s.value for s in TaskStatus])
    p.set_defaults(func=cmd_list)

    sub.add_parser('next', help='Show the task that would run next').set_defaults(func=cmd_next)

    p = sub.add_parser('add', help='Add a task')
    p.add_argument('task_id')
    p.add_argument('name')
    p.add_argument('--description', default='')
    p.add_argument('--order', type=int, default=0, help='0 places the task last')
    p.set_defaults(func=cmd_add)

    for name, method, verb in (
        ('skip', 'skip', 'Skipped'),
        ('pause', 'pause', 'Paused'),
        ('complete', 'mark_complete', 'Completed'),
        ('fail', 'fail', 'Failed'),
    ):
        p = sub.add_parser(name, help=f'Mark a task {verb.lower()}')
        p.add_argument('task_id')
        p.set_defaults(func=_transition(method, verb))

    p = sub.add_parser('resume', help='Resume a paused task')
    p.add_argument('task_id')
    p.set_defaults(func=cmd_resume)

    p = sub.add_parser('reorder', help='Move the given tasks to the front, in this order')
    p.add_argument('task_ids', nargs='+')
    p.set_defaults(func=cmd_reorder)

    p = sub.add_parser('hooks', help='Validate and list hook configuration')
    p.add_argument('--hooks-file', default=None)
    p.set_defaults(func=cmd_hooks)

    p = sub.add_parser('run-hooks', help='Run one hook phase for a task')
    p.add_argument('phase', choices=['pre', 'post'])
    p.add_argument('task_id')
    p.add_argument('--hooks-file', default=None)
    p.set_defaults(func=cmd_run_hooks)

    sub.add_parser('dashboard', help='Open the terminal dashboard').set_defaults(func=cmd_dashboard)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    project_root = (args.project_root or config.PROJECT_ROOT).resolve()
    args.project_root = project_root
    tasks_file = args.tasks_file or config.tasks_path(project_root)

    task_logger = TaskLogger(
        log_dir=str(config.log_dir(project_root)),
        log_level=config.LOG_LEVEL,
        sync=config.LOG_FSYNC,
        console=args.verbose,
    )
    try:
        manager = TaskManager(TaskStore(tasks_file), task_logger=task_logger)
        manager.load()
        return args.func(manager, args)
    except TaskLoopError as e:
        task_logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        task_logger.close()


if __name__ == "__main__":
    sys.exit(main())
