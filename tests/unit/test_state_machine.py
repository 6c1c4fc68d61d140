from collections.abc import Callable
from datetime import datetime

import pytest

from listing_worker.tasks.exceptions import (
    InvalidTransitionError,
    TaskCancelledError,
    TaskNotFoundError,
)
from listing_worker.tasks.models import TaskStatus
from listing_worker.tasks.registry import RunToken
from listing_worker.tasks.state_machine import TaskStateMachine
from tests.fakes import FIXED_NOW, InMemoryTaskStore, make_task


def _make_machine(
    task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
) -> TaskStateMachine:
    return TaskStateMachine(task_store, clock=fixed_clock)


class TestLoad:
    def test_returns_stored_record(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task_store.add(make_task(task_id=3))
        machine = _make_machine(task_store, fixed_clock)

        assert machine.load(3).id == 3

    def test_raises_when_missing(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(TaskNotFoundError, match="Task 99 not found"):
            machine.load(99)


class TestAdvance:
    def test_persists_status_progress_and_label(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task())
        machine = _make_machine(task_store, fixed_clock)

        updated = machine.advance(task, TaskStatus.ANALYZING, 30, "Analyzing")

        stored = task_store.get(1)
        assert stored.status is TaskStatus.ANALYZING
        assert stored.progress == 30
        assert stored.stage_label == "Analyzing"
        assert stored.updated_at == FIXED_NOW
        assert updated == stored

    def test_same_status_with_higher_progress_is_allowed(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.ANALYZING, progress=30))
        machine = _make_machine(task_store, fixed_clock)

        machine.advance(task, TaskStatus.ANALYZING, 60, "Done")

        assert task_store.get(1).progress == 60

    def test_completed_sets_completed_at(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.PUBLISHING, progress=90))
        machine = _make_machine(task_store, fixed_clock)

        machine.advance(task, TaskStatus.COMPLETED, 100, "Completed")

        assert task_store.get(1).completed_at == FIXED_NOW

    def test_rejects_backwards_status(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.PUBLISHING, progress=80))
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(InvalidTransitionError, match="cannot move back"):
            machine.advance(task, TaskStatus.ANALYZING, 90, "Again")
        assert task_store.updates == []

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TaskStatus.CREATING, TaskStatus.PUBLISHING),
            (TaskStatus.CREATING, TaskStatus.COMPLETED),
            (TaskStatus.ANALYZING, TaskStatus.COMPLETED),
        ],
    )
    def test_rejects_skipped_status(
        self,
        task_store: InMemoryTaskStore,
        fixed_clock: Callable[[], datetime],
        current: TaskStatus,
        target: TaskStatus,
    ) -> None:
        task = task_store.add(make_task(status=current, progress=30))
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(InvalidTransitionError, match="cannot skip"):
            machine.advance(task, target, 100, "Skipped")
        assert task_store.updates == []

    def test_rejects_decreasing_progress(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.ANALYZING, progress=60))
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(InvalidTransitionError, match="cannot decrease"):
            machine.advance(task, TaskStatus.PUBLISHING, 50, "Publishing")

    @pytest.mark.parametrize("progress", [-1, 101])
    def test_rejects_progress_out_of_range(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime], progress: int
    ) -> None:
        task = task_store.add(make_task())
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(InvalidTransitionError, match="out of range"):
            machine.advance(task, TaskStatus.ANALYZING, progress, "Analyzing")

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.ERROR])
    def test_terminal_task_cannot_advance(
        self,
        task_store: InMemoryTaskStore,
        fixed_clock: Callable[[], datetime],
        status: TaskStatus,
    ) -> None:
        task = task_store.add(make_task(status=status, progress=100))
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(InvalidTransitionError, match="cannot move"):
            machine.advance(task, TaskStatus.COMPLETED, 100, "Again")

    def test_error_status_is_routed_to_fail(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.ANALYZING, progress=60))
        machine = _make_machine(task_store, fixed_clock)

        machine.advance(task, TaskStatus.ERROR, 60, "broken")

        stored = task_store.get(1)
        assert stored.status is TaskStatus.ERROR
        assert stored.progress == 0
        assert stored.error_message == "broken"

    def test_write_is_refused_for_cancelled_run(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task())
        machine = _make_machine(task_store, fixed_clock)
        token = RunToken(1)
        token.cancel()

        with pytest.raises(TaskCancelledError):
            machine.advance(task, TaskStatus.ANALYZING, 30, "Analyzing", token)
        assert task_store.updates == []


class TestFail:
    def test_sets_error_fields(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.PUBLISHING, progress=80))
        machine = _make_machine(task_store, fixed_clock)

        machine.fail(task, "publish failed")

        stored = task_store.get(1)
        assert stored.status is TaskStatus.ERROR
        assert stored.progress == 0
        assert stored.error_message == "publish failed"
        assert stored.completed_at == FIXED_NOW

    def test_terminal_task_is_left_untouched(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task = task_store.add(make_task(status=TaskStatus.COMPLETED, progress=100))
        machine = _make_machine(task_store, fixed_clock)

        result = machine.fail(task, "late failure")

        assert result is task
        assert task_store.updates == []

    def test_fail_by_id_loads_current_record(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        task_store.add(make_task(status=TaskStatus.ANALYZING, progress=30))
        machine = _make_machine(task_store, fixed_clock)

        machine.fail_by_id(1, "processing timeout")

        assert task_store.get(1).error_message == "processing timeout"

    def test_fail_by_id_raises_for_unknown_task(
        self, task_store: InMemoryTaskStore, fixed_clock: Callable[[], datetime]
    ) -> None:
        machine = _make_machine(task_store, fixed_clock)

        with pytest.raises(TaskNotFoundError):
            machine.fail_by_id(5, "processing timeout")
