"""Persisted lifecycle of analysis tasks.

CREATING -> ANALYZING -> PUBLISHING -> COMPLETED, with ERROR reachable from
any non-terminal state. Progress never decreases while a task is alive.
"""

from collections.abc import Callable
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from listing_worker.database.models import TaskRecord
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.logging.logger import Log
from listing_worker.tasks.exceptions import InvalidTransitionError, TaskNotFoundError
from listing_worker.tasks.models import TaskStatus
from listing_worker.tasks.registry import RunToken


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStateMachine:
    """Validates and persists task transitions through the task store."""

    def __init__(
        self,
        store: TaskRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    def load(self, task_id: int) -> TaskRecord:
        """Fetch the current record of a task.

        Raises:
            TaskNotFoundError: if the store has no such task.
        """
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    def advance(
        self,
        task: TaskRecord,
        status: TaskStatus,
        progress: int,
        label: str,
        token: RunToken | None = None,
    ) -> TaskRecord:
        """Move a task forward and persist the new status, progress and label.

        Raises:
            InvalidTransitionError: if the task is terminal, the status goes
                backwards or skips a step, or the progress decreases.
        """
        if status is TaskStatus.ERROR:
            return self.fail(task, label, token)

        if task.is_terminal:
            raise InvalidTransitionError(
                f"Task {task.id} is {task.status.value} and cannot move to {status.value}"
            )
        if status.rank < task.status.rank:
            raise InvalidTransitionError(
                f"Task {task.id} cannot move back from {task.status.value} to {status.value}"
            )
        if status.rank > task.status.rank + 1:
            raise InvalidTransitionError(
                f"Task {task.id} cannot skip from {task.status.value} to {status.value}"
            )
        if not 0 <= progress <= 100:
            raise InvalidTransitionError(f"Task {task.id} progress {progress} is out of range")
        if progress < task.progress:
            raise InvalidTransitionError(
                f"Task {task.id} progress cannot decrease from {task.progress} to {progress}"
            )

        now = self._clock()
        fields: dict[str, Any] = {
            "status": status,
            "progress": progress,
            "stage_label": label,
            "updated_at": now,
        }
        if status is TaskStatus.COMPLETED:
            fields["completed_at"] = now

        self._write(task.id, fields, token)
        Log.info(f"Task {task.id}: {status.value} ({progress}%) - {label}")
        return replace(task, **fields)

    def fail(
        self,
        task: TaskRecord,
        reason: str,
        token: RunToken | None = None,
    ) -> TaskRecord:
        """Put a task into ERROR. A terminal task is left untouched."""
        if task.is_terminal:
            Log.warning(
                f"Task {task.id} is already {task.status.value}, ignoring failure: {reason}"
            )
            return task

        now = self._clock()
        fields: dict[str, Any] = {
            "status": TaskStatus.ERROR,
            "progress": 0,
            "error_message": reason,
            "completed_at": now,
            "updated_at": now,
        }
        self._write(task.id, fields, token)
        Log.error(f"Task {task.id} marked as failed: {reason}")
        return replace(task, **fields)

    def fail_by_id(self, task_id: int, reason: str) -> TaskRecord:
        """Load a task by id and fail it."""
        return self.fail(self.load(task_id), reason)

    def _write(self, task_id: int, fields: dict[str, Any], token: RunToken | None) -> None:
        with token.active() if token is not None else nullcontext():
            self._store.update(task_id, **fields)
