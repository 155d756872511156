# tests/conftest.py

import logging
from pathlib import Path

import pytest

from taskloop.llm.registry import AgentRegistry
from taskloop.models.task import Task
from taskloop.scheduler.manager import TaskManager
from taskloop.state.store import TaskStore

from .fakes import FakeAgent


@pytest.fixture(autouse=True)
def reset_taskloop_logger():
    """TaskLogger detaches the package logger from root; undo that between tests."""
    yield
    package_logger = logging.getLogger("taskloop")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "tasks.json"


@pytest.fixture()
def store(store_path: Path) -> TaskStore:
    return TaskStore(store_path)


@pytest.fixture()
def manager(store: TaskStore) -> TaskManager:
    return TaskManager(store)


@pytest.fixture()
def make_task():
    """Factory for tasks with explicit order."""

    def _make(task_id: str, order: int = 0, name: str = "", description: str = "") -> Task:
        task = Task.new(task_id, name or f"Task {task_id}", description)
        task.order = order
        return task

    return _make


@pytest.fixture()
def fake_agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture()
def registry(fake_agent: FakeAgent) -> AgentRegistry:
    reg = AgentRegistry()
    reg.register(fake_agent)
    return reg
