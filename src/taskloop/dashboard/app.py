"""Read-only task dashboard using Textual."""

import logging
from pathlib import Path
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Static, Tab, Tabs

from .widgets import LogsWidget, OverviewWidget, TasksWidget
from ..core.exceptions import StateError
from ..scheduler.manager import TaskManager

logger = logging.getLogger(__name__)


class TaskLoopDashboard(App):
    """Polls a TaskManager and shows progress, tasks and the execution log."""

    CSS = """
    Screen {
        background: $surface;
    }

    #header-bar {
        height: 1;
        dock: top;
        background: $primary;
        color: $text;
        text-align: center;
    }

    #footer-bar {
        height: 1;
        dock: bottom;
        background: $primary;
        color: $text;
    }

    #content {
        height: 1fr;
        width: 1fr;
    }

    .section-title {
        margin: 1;
        text-style: bold;
    }

    .content {
        margin: 1;
        padding: 1;
    }

    .task-list-container {
        width: 60%;
        height: 1fr;
    }

    .task-detail-container {
        width: 40%;
        height: 1fr;
    }

    #task-detail-scroll {
        height: 1fr;
        width: 1fr;
    }
    """

    TITLE = "taskloop dashboard"
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload", "Reload"),
    ]

    def __init__(
        self,
        manager: TaskManager,
        log_dir: Optional[Path] = None,
        refresh_seconds: float = 2.0,
        reload_store: bool = False,
    ):
        """
        Args:
            manager: Manager whose store is displayed
            log_dir: Directory holding execution logs; the log tab is empty without it
            refresh_seconds: Poll interval
            reload_store: Re-read the store file on every poll, for watching another process
        """
        super().__init__()
        self.manager = manager
        self.log_dir = log_dir
        self.refresh_seconds = refresh_seconds
        self.reload_store = reload_store
        self.current_tab: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield Static(self.TITLE, id="header-bar")
        yield Tabs(
            Tab("Overview", id="overview"),
            Tab("Tasks", id="tasks"),
            Tab("Logs", id="logs"),
            id="tabs",
        )
        yield Container(id="content")
        yield Static("[q] quit  [r] reload", id="footer-bar", markup=False)

    def on_mount(self) -> None:
        self.set_interval(self.refresh_seconds, self.update_display)

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id if event.tab is not None else "overview"
        if tab_id == self.current_tab:
            return
        self.current_tab = tab_id

        content = self.query_one("#content", Container)
        content.remove_children()
        if tab_id == "tasks":
            content.mount(TasksWidget(self.manager))
        elif tab_id == "logs":
            if self.log_dir is not None:
                content.mount(LogsWidget(self.log_dir))
            else:
                content.mount(Static("No log directory configured.", classes="content"))
        else:
            content.mount(OverviewWidget(self.manager))

    def _reload(self) -> None:
        try:
            self.manager.load()
        except StateError as e:
            # A half-written file from another process; keep showing the last good state.
            logger.warning("Dashboard reload failed: %s", e)

    def update_display(self) -> None:
        """Refresh whichever widget is mounted."""
        if self.reload_store:
            self._reload()

        for widget in self.query("#overview-widget"):
            widget.update_content()
        for widget in self.query("#tasks-widget"):
            widget.update_tasks()
        for widget in self.query("#logs-widget"):
            widget.update_logs()

    def action_reload(self) -> None:
        self._reload()
        self.update_display()
