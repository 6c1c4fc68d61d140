from concurrent.futures import Future

from listing_worker.database.models import TaskRecord
from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.logging.logger import Log
from listing_worker.tasks.exceptions import SubjectNotFoundError, TaskNotFoundError
from listing_worker.tasks.models import LABEL_SUBMITTED, PROGRESS_SUBMITTED, TaskStatus
from listing_worker.tasks.processor import TaskProcessor


class TaskService:
    """Entry points for in-process callers: submit, resume and poll tasks."""

    def __init__(
        self,
        store: TaskRepository,
        subject_repo: SubjectRepository,
        processor: TaskProcessor,
    ) -> None:
        self._store = store
        self._subject_repo = subject_repo
        self._processor = processor

    def submit(self, subject_id: int) -> int:
        """Create a task for the subject and start processing it in the background.

        Raises:
            SubjectNotFoundError: if the subject does not exist.
        """
        if self._subject_repo.find_by_id(subject_id) is None:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

        task_id = self._store.create(
            TaskRecord(
                id=0,
                subject_id=subject_id,
                status=TaskStatus.CREATING,
                progress=PROGRESS_SUBMITTED,
                stage_label=LABEL_SUBMITTED,
            )
        )
        Log.info(f"Task {task_id} created for subject {subject_id}")
        self._processor.dispatch(task_id, subject_id)
        return task_id

    def resume(self, task_id: int, subject_id: int) -> Future[None]:
        """Restart processing of a task. A no-op while the task is in flight."""
        return self._processor.dispatch(task_id, subject_id)

    def get(self, task_id: int) -> TaskRecord:
        """Current record of a task, for progress polling.

        Raises:
            TaskNotFoundError: if the task does not exist.
        """
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task
