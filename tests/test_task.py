# tests/test_task.py

from datetime import datetime, timedelta, timezone

import pytest

from taskloop.core.exceptions import (
    InvalidTaskError,
    IterationAlreadyCompleteError,
    NoActiveIterationError,
)
from taskloop.models.task import Iteration, Task, TaskStatus, parse_timestamp


def test_status_predicates() -> None:
    assert {s for s in TaskStatus if s.is_terminal()} == {
        TaskStatus.COMPLETED,
        TaskStatus.SKIPPED,
        TaskStatus.FAILED,
    }
    assert {s for s in TaskStatus if s.is_pending()} == {TaskStatus.PENDING, TaskStatus.PAUSED}
    assert TaskStatus.is_valid("paused")
    assert not TaskStatus.is_valid("blocked")


def test_new_task_defaults() -> None:
    task = Task.new("T1", "First", "do things")

    assert task.status == TaskStatus.PENDING
    assert task.iterations == []
    assert task.created_at is not None
    assert task.updated_at == task.created_at
    assert task.completed_at is None


def test_iteration_numbers_are_never_reused() -> None:
    task = Task.new("T1", "First")

    first = task.start_iteration()
    task.end_iteration("DONE", "output")
    second = task.start_iteration()

    assert (first.number, second.number) == (1, 2)
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.iteration_count() == 2


def test_end_iteration_without_start_fails() -> None:
    task = Task.new("T1", "First")

    with pytest.raises(NoActiveIterationError):
        task.end_iteration("DONE")


def test_end_iteration_twice_fails() -> None:
    task = Task.new("T1", "First")
    task.start_iteration()
    task.end_iteration("NEXT")

    with pytest.raises(IterationAlreadyCompleteError) as exc:
        task.end_iteration("DONE")
    assert exc.value.task_id == "T1"


def test_end_iteration_records_result_and_session() -> None:
    task = Task.new("T1", "First")
    task.start_iteration()

    iteration = task.end_iteration("DONE", "agent said hi", session_id="abc-123")

    assert iteration.is_complete()
    assert iteration.result == "DONE"
    assert iteration.agent_output == "agent said hi"
    assert iteration.session_id == "abc-123"
    assert task.session_id == "abc-123"


def test_empty_session_id_keeps_previous_one() -> None:
    task = Task.new("T1", "First")
    task.start_iteration()
    task.end_iteration("NEXT", session_id="s1")
    task.start_iteration()
    task.end_iteration("DONE")

    assert task.session_id == "s1"
    assert task.iterations[1].session_id == ""


def test_start_iteration_leaves_previous_open_iteration() -> None:
    task = Task.new("T1", "First")
    task.start_iteration()
    task.start_iteration()

    assert [i.is_complete() for i in task.iterations] == [False, False]
    assert task.current_iteration().number == 2


def test_status_transitions() -> None:
    task = Task.new("T1", "First")

    task.mark_paused()
    assert task.status == TaskStatus.PAUSED
    assert not task.is_terminal()

    task.mark_completed()
    assert task.status == TaskStatus.COMPLETED
    assert task.completed_at is not None
    assert task.is_terminal()

    task.mark_skipped()
    assert task.status == TaskStatus.SKIPPED

    task.mark_failed()
    assert task.status == TaskStatus.FAILED


def test_resume_only_acts_on_paused_tasks() -> None:
    task = Task.new("T1", "First")
    assert task.resume() is None
    assert task.iterations == []

    task.mark_paused()
    iteration = task.resume()

    assert iteration is not None and iteration.number == 1
    assert task.status == TaskStatus.IN_PROGRESS


def test_metadata() -> None:
    task = Task.new("T1", "First")
    before = task.updated_at

    task.set_metadata("source", "import")

    assert task.get_metadata("source") == "import"
    assert task.get_metadata("missing") is None
    assert task.get_metadata("missing", "n/a") == "n/a"
    assert task.updated_at >= before


def test_validate() -> None:
    Task.new("T1", "First").validate()

    with pytest.raises(InvalidTaskError):
        Task.new("", "No id").validate()
    with pytest.raises(InvalidTaskError):
        Task.new("T2", "").validate()
    with pytest.raises(InvalidTaskError):
        Task(id="T3", name="Odd", status="blocked").validate()


def test_clone_is_independent() -> None:
    task = Task.new("T1", "First")
    task.start_iteration()
    task.set_metadata("k", "v")

    copy = task.clone()
    copy.iterations[0].result = "changed"
    copy.metadata["k"] = "other"
    copy.name = "Renamed"

    assert task.iterations[0].result == ""
    assert task.metadata["k"] == "v"
    assert task.name == "First"


def test_total_duration_sums_closed_iterations() -> None:
    start = datetime(2024, 1, 1, 12, 0, 0)
    task = Task.new("T1", "First")
    task.iterations = [
        Iteration(number=1, started_at=start, ended_at=start + timedelta(seconds=30)),
        Iteration(number=2, started_at=start, ended_at=start + timedelta(seconds=90)),
    ]

    assert task.total_duration() == timedelta(seconds=120)


def test_end_iteration_after_naive_start_time() -> None:
    task = Task.new("T1", "First")
    task.iterations = [Iteration(number=1, started_at=datetime(2024, 1, 1, 12, 0, 0))]
    task.status = TaskStatus.IN_PROGRESS

    iteration = task.end_iteration("DONE")

    assert iteration.started_at.tzinfo == timezone.utc
    assert iteration.duration() > timedelta(0)


def test_new_timestamps_are_utc() -> None:
    task = Task.new("T1", "First")
    iteration = task.start_iteration()

    assert task.created_at.utcoffset() == timedelta(0)
    assert iteration.started_at.utcoffset() == timedelta(0)


def test_dict_round_trip() -> None:
    task = Task.new("T1", "First", "desc")
    task.order = 3
    task.start_iteration()
    task.end_iteration("DONE", "out", "sess")
    task.mark_completed()

    restored = Task.from_dict(task.to_dict())

    assert restored.to_dict() == task.to_dict()
    assert restored.status == TaskStatus.COMPLETED


def test_from_dict_keeps_unknown_status() -> None:
    task = Task.from_dict({"id": "T1", "name": "x", "status": "blocked"})

    assert task.status == "blocked"
    assert not task.is_terminal()
    with pytest.raises(InvalidTaskError):
        task.validate()


def test_parse_timestamp_handles_unset_values() -> None:
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None
    assert parse_timestamp("0001-01-01T00:00:00Z") is None

    parsed = parse_timestamp("2024-05-01T10:20:30.123456789Z")
    assert parsed.year == 2024 and parsed.microsecond == 123456
    assert parsed.utcoffset() == timedelta(0)
    assert parse_timestamp("2024-05-01T10:20:30").tzinfo == timezone.utc
    assert parse_timestamp("2024-05-01T10:20:30-05:00").utcoffset() == timedelta(hours=-5)

    with pytest.raises(ValueError):
        parse_timestamp(12345)
