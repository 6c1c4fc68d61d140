import threading
from collections.abc import Iterator
from contextlib import contextmanager

from listing_worker.tasks.exceptions import TaskCancelledError

_RUNNING = "running"
_CANCELLED = "cancelled"
_FINISHED = "finished"


class RunToken:
    """Ownership handle of one run of a task.

    The run and its timeout callback race for the token: whichever calls
    cancel() or finish() first wins, and writes performed inside active()
    are refused once the run has lost.
    """

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        self._lock = threading.Lock()
        self._state = _RUNNING

    @property
    def cancelled(self) -> bool:
        return self._state == _CANCELLED

    @contextmanager
    def active(self) -> Iterator[None]:
        """Hold the token while writing; raise if the run was cancelled."""
        with self._lock:
            if self._state == _CANCELLED:
                raise TaskCancelledError(f"Task {self.task_id} run was cancelled by timeout")
            yield

    def cancel(self) -> bool:
        """Mark the run cancelled. Returns False if it already finished."""
        return self._settle(_CANCELLED)

    def finish(self) -> bool:
        """Mark the run finished. Returns False if it was already cancelled."""
        return self._settle(_FINISHED)

    def _settle(self, state: str) -> bool:
        with self._lock:
            if self._state != _RUNNING:
                return False
            self._state = state
            return True


class InFlightRegistry:
    """Process-wide set of task ids currently being processed.

    Created once at startup and injected into the TaskProcessor. Critical
    sections are dictionary operations only.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: dict[int, RunToken] = {}

    def try_acquire(self, task_id: int) -> RunToken | None:
        """Register a run for task_id, or return None if one is in flight."""
        with self._lock:
            if task_id in self._runs:
                return None
            token = RunToken(task_id)
            self._runs[task_id] = token
            return token

    def release(self, task_id: int, token: RunToken) -> bool:
        """Remove the entry for task_id if it still belongs to token."""
        with self._lock:
            if self._runs.get(task_id) is not token:
                return False
            del self._runs[task_id]
            return True

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._runs

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)
