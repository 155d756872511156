"""Dashboard widgets and the text they render."""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from textual.containers import Horizontal, ScrollableContainer, Vertical
from textual.widgets import DataTable, RichLog, Static

from ..models.state import TaskStatistics
from ..models.task import Task, TaskStatus
from ..scheduler.manager import TaskManager

TITLE_WIDTH = 40

_STATUS_STYLES = {
    TaskStatus.PENDING.value: "yellow",
    TaskStatus.IN_PROGRESS.value: "cyan",
    TaskStatus.PAUSED.value: "magenta",
    TaskStatus.COMPLETED.value: "green",
    TaskStatus.SKIPPED.value: "dim",
    TaskStatus.FAILED.value: "red",
}

_LEVEL_STYLES = {
    "ERROR": "red",
    "WARNING": "yellow",
    "INFO": "cyan",
}


def _status_value(status) -> str:
    return status.value if isinstance(status, TaskStatus) else str(status)


def format_status(status) -> str:
    """Status name wrapped in its color markup."""
    value = _status_value(status)
    style = _STATUS_STYLES.get(value)
    if style is None:
        return value
    return f"[{style}]{value}[/{style}]"


def format_task_row(task: Task) -> Tuple[str, str, str, str, str]:
    """Cells for the task table: order, ID, name, status, iterations."""
    name = task.name if len(task.name) <= TITLE_WIDTH else task.name[:TITLE_WIDTH - 3] + "..."
    return (
        str(task.order),
        task.id,
        name,
        format_status(task.status),
        str(task.iteration_count()),
    )


def format_progress(stats: TaskStatistics) -> str:
    """Overview text with completion rate and per-status counts."""
    rate = (stats.completed / stats.total * 100) if stats.total > 0 else 0
    return "\n".join([
        f"Progress: [bold]{stats.completed}/{stats.total}[/bold] ({rate:.1f}%)",
        f"Remaining: {stats.remaining}",
        f"In progress: [cyan]{stats.in_progress}[/cyan]",
        f"Pending: [yellow]{stats.pending}[/yellow]",
        f"Paused: [magenta]{stats.paused}[/magenta]",
        f"Completed: [green]{stats.completed}[/green]",
        f"Skipped: {stats.skipped}",
        f"Failed: [red]{stats.failed}[/red]",
    ])


def format_task_detail(task: Task) -> str:
    lines = [
        f"[bold]ID:[/bold] {task.id}",
        f"[bold]Name:[/bold] {task.name}",
        f"[bold]Status:[/bold] {format_status(task.status)}",
        f"[bold]Order:[/bold] {task.order}",
        f"[bold]Created:[/bold] {task.created_at.isoformat() if task.created_at else 'N/A'}",
        f"[bold]Updated:[/bold] {task.updated_at.isoformat() if task.updated_at else 'N/A'}",
    ]
    if task.session_id:
        lines.append(f"[bold]Session:[/bold] {task.session_id}")
    lines.extend(["", "[bold]Description:[/bold]", task.description or "(none)"])

    if task.iterations:
        lines.extend(["", "[bold]Iterations:[/bold]"])
        for iteration in task.iterations:
            state = iteration.result or ("running" if not iteration.is_complete() else "no result")
            lines.append(
                f"  #{iteration.number} {state} ({iteration.duration().total_seconds():.1f}s)"
            )
    return "\n".join(lines)


def format_log_line(line: str) -> Optional[str]:
    """
    Color an execution log line by level.
    Format: "2024-01-01 12:00:00 - taskloop.x - INFO - message"
    """
    line = line.rstrip('\n\r')
    if not line:
        return None
    parts = line.split(' - ', 3)
    if len(parts) < 4:
        return line
    level, message = parts[2], parts[3].strip()
    style = _LEVEL_STYLES.get(level)
    if style is None:
        return message
    return f"[{style}]{message}[/{style}]"


class OverviewWidget(ScrollableContainer):
    """Progress and per-status counts."""

    def __init__(self, manager: TaskManager):
        super().__init__(id="overview-widget")
        self.manager = manager

    def compose(self):
        with Vertical():
            yield Static("[bold]Progress[/bold]", classes="section-title")
            yield Static(id="progress-info", classes="content")

    def on_mount(self) -> None:
        self.update_content()

    def update_content(self) -> None:
        self.query_one("#progress-info", Static).update(format_progress(self.manager.statistics()))


class TasksWidget(ScrollableContainer):
    """Task table with a detail pane for the selected task."""

    COLUMNS = ("Order", "ID", "Name", "Status", "Iterations")

    def __init__(self, manager: TaskManager):
        super().__init__(id="tasks-widget")
        self.manager = manager
        self.selected_task_id: Optional[str] = None

    def compose(self):
        with Horizontal():
            with Vertical(classes="task-list-container"):
                yield Static("[bold]Tasks[/bold]", classes="section-title")
                yield DataTable(id="task-table")
            with Vertical(classes="task-detail-container"):
                yield Static("[bold]Details[/bold]", classes="section-title")
                with ScrollableContainer(id="task-detail-scroll"):
                    yield Static(id="task-detail", classes="content")

    def on_mount(self) -> None:
        table = self.query_one("#task-table", DataTable)
        for column in self.COLUMNS:
            table.add_column(column, key=column)
        table.cursor_type = "row"
        self.update_tasks()

    def update_tasks(self) -> None:
        """Refresh rows in place so the cursor position survives."""
        table = self.query_one("#task-table", DataTable)
        tasks = self.manager.all()
        current_ids: List[str] = [t.id for t in tasks]

        if [str(key.value) for key in table.rows.keys()] != current_ids:
            # Order or membership changed; rebuild.
            table.clear()
            for task in tasks:
                table.add_row(*format_task_row(task), key=task.id)
        else:
            for task in tasks:
                for column, value in zip(self.COLUMNS, format_task_row(task)):
                    table.update_cell(task.id, column, value)

        if self.selected_task_id in current_ids:
            self._show_task_detail(self.selected_task_id)

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None:
            self.selected_task_id = str(event.row_key.value)
            self._show_task_detail(self.selected_task_id)

    def _show_task_detail(self, task_id: str) -> None:
        task = self.manager.get_by_id(task_id)
        if task is None:
            return
        self.query_one("#task-detail", Static).update(format_task_detail(task))


class LogsWidget(RichLog):
    """Tails today's execution log."""

    def __init__(self, log_dir: Path):
        super().__init__(id="logs-widget", max_lines=1000, markup=True)
        self.log_file_path = Path(log_dir) / f"execution_{datetime.now().strftime('%Y%m%d')}.log"
        self.last_position = 0

    def on_mount(self) -> None:
        self.update_logs()

    def update_logs(self) -> None:
        """Append lines written since the last read."""
        if not self.log_file_path.exists():
            return
        with open(self.log_file_path, 'r', encoding='utf-8') as f:
            f.seek(self.last_position)
            for line in f.readlines():
                formatted = format_log_line(line)
                if formatted is not None:
                    self.write(formatted)
            self.last_position = f.tell()
