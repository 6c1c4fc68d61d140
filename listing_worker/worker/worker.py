import time

from listing_worker.config.settings import Settings
from listing_worker.database.models import TaskRecord
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.logging.logger import Log
from listing_worker.tasks.models import TaskStatus
from listing_worker.tasks.processor import TaskProcessor


class Worker:
    """Poll loop: find new tasks -> dispatch -> sleep."""

    def __init__(
        self,
        task_repo: TaskRepository,
        processor: TaskProcessor,
        settings: Settings,
    ) -> None:
        self._task_repo = task_repo
        self._processor = processor
        self._settings = settings

    def run(self, max_polls: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_polls is set, stop after that many polls (for testing).
        """
        Log.info("Worker started, polling for tasks")
        polls = 0
        try:
            while max_polls is None or polls < max_polls:
                dispatched = self._dispatch_new_tasks()
                polls += 1
                if not dispatched:
                    Log.debug("No new tasks, sleeping")
                time.sleep(self._settings.task_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _dispatch_new_tasks(self) -> int:
        """Dispatch CREATING tasks that are not in flight; return how many."""
        dispatched = 0
        for task in self._find_new_tasks():
            if task.subject_id is None or self._processor.is_in_flight(task.id):
                continue
            self._processor.dispatch(task.id, task.subject_id)
            dispatched += 1
        return dispatched

    def _find_new_tasks(self) -> list[TaskRecord]:
        """Query CREATING tasks. Gracefully handle DB errors."""
        try:
            return self._task_repo.find_by_status_in([TaskStatus.CREATING])
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
