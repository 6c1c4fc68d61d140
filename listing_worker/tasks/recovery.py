import threading
from collections.abc import Callable
from datetime import datetime, timezone

from listing_worker.database.models import TaskRecord
from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.logging.logger import Log
from listing_worker.tasks.models import RESUMABLE_STATUSES, SUBJECT_MISSING_REASON, RecoveryReport
from listing_worker.tasks.processor import TaskProcessor
from listing_worker.tasks.state_machine import TaskStateMachine, utc_now


class RecoveryInitializer:
    """Resumes, times out or orphans the tasks left unfinished by a restart.

    Meant to run once at startup, before the worker starts polling.
    """

    def __init__(
        self,
        *,
        store: TaskRepository,
        state: TaskStateMachine,
        subject_repo: SubjectRepository,
        processor: TaskProcessor,
        task_timeout_seconds: float = 600,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._state = state
        self._subject_repo = subject_repo
        self._processor = processor
        self._task_timeout = task_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._done = False

    def run(self) -> RecoveryReport:
        """Decide the fate of every non-terminal task.

        Raises:
            Exception: if the unfinished tasks cannot be queried. The next
                call will try again.
        """
        with self._lock:
            if self._done:
                Log.warning("Recovery already ran in this process, skipping")
                return RecoveryReport()
            self._done = True

        try:
            tasks = self._store.find_by_status_in(RESUMABLE_STATUSES)
        except Exception:
            with self._lock:
                self._done = False
            raise

        report = RecoveryReport()
        Log.info(f"Recovery found {len(tasks)} unfinished task(s)")
        for task in tasks:
            try:
                self._recover(task, report)
            except Exception as exc:
                Log.error(f"Failed to recover task {task.id}: {exc}")
                report.errors.append(task.id)

        Log.info(
            f"Recovery done: {len(report.resumed)} resumed, {len(report.timed_out)} timed out, "
            f"{len(report.orphaned)} orphaned, {len(report.errors)} failed"
        )
        return report

    def _recover(self, task: TaskRecord, report: RecoveryReport) -> None:
        elapsed = self._elapsed_seconds(task)
        if elapsed > self._task_timeout:
            minutes = round(elapsed / 60)
            self._state.fail(task, f"timeout after resuming, elapsed {minutes} minutes")
            Log.warning(f"Task {task.id} timed out during downtime ({minutes} minutes old)")
            report.timed_out.append(task.id)
            return

        if not task.subject_id or self._subject_repo.find_by_id(task.subject_id) is None:
            self._state.fail(task, SUBJECT_MISSING_REASON)
            Log.warning(f"Task {task.id} lost its subject {task.subject_id}")
            report.orphaned.append(task.id)
            return

        self._processor.dispatch(task.id, task.subject_id)
        Log.info(f"Task {task.id} resumed from {task.status.value} ({task.progress}%)")
        report.resumed.append(task.id)

    def _elapsed_seconds(self, task: TaskRecord) -> float:
        if task.created_at is None:
            return 0.0
        created_at = task.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return (self._clock() - created_at).total_seconds()
