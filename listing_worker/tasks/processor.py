import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol

from listing_worker.analysis.analyzer import ListingAnalyzer
from listing_worker.analysis.requests import StageRequestBuilder
from listing_worker.config.settings import Settings
from listing_worker.database.models import Subject, TaskRecord
from listing_worker.database.repositories.catalog_repository import CatalogRepository
from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.inference.factory import InferenceClientFactory
from listing_worker.logging.logger import Log
from listing_worker.publishing.publisher import BasePublisher, DraftPublisher
from listing_worker.quality.models import QualityConfig
from listing_worker.quality.scorer import QualityScorer
from listing_worker.reconciliation.models import ReconcileConfig
from listing_worker.stages.executor import StageExecutor
from listing_worker.tasks.exceptions import SubjectNotFoundError, TaskCancelledError
from listing_worker.tasks.models import (
    LABEL_ANALYSIS_REUSED,
    LABEL_ANALYZED,
    LABEL_ANALYZED_DEGRADED,
    LABEL_ANALYZING,
    LABEL_COMPLETED,
    LABEL_PUBLISHED,
    LABEL_PUBLISHING,
    PROGRESS_ANALYZED,
    PROGRESS_ANALYZING,
    PROGRESS_COMPLETED,
    PROGRESS_PUBLISHED,
    PROGRESS_PUBLISHING,
    TIMEOUT_REASON,
    TaskStatus,
)
from listing_worker.tasks.registry import InFlightRegistry, RunToken
from listing_worker.tasks.state_machine import TaskStateMachine


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


def daemon_timer(interval: float, callback: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class TaskProcessor:
    """Drives one task from its recorded status to COMPLETED or ERROR.

    At most one run per task id is active at a time. Each run races a
    wall-clock timer; the loser's writes are refused through its RunToken.
    """

    def __init__(
        self,
        *,
        state: TaskStateMachine,
        subject_repo: SubjectRepository,
        analyzer: ListingAnalyzer,
        publisher: BasePublisher,
        registry: InFlightRegistry,
        task_timeout_seconds: float = 600,
        max_workers: int = 4,
        timer_factory: Callable[[float, Callable[[], None]], Timer] = daemon_timer,
    ) -> None:
        self._state = state
        self._subject_repo = subject_repo
        self._analyzer = analyzer
        self._publisher = publisher
        self._registry = registry
        self._task_timeout = task_timeout_seconds
        self._timer_factory = timer_factory
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="task")
        self._pending: dict[int, Future[None]] = {}
        self._pending_lock = threading.Lock()

    def dispatch(self, task_id: int, subject_id: int) -> Future[None]:
        """Run process() in the background.

        A task already queued or running is not submitted again; its
        existing future is returned instead.
        """
        with self._pending_lock:
            pending = self._pending.get(task_id)
            if pending is not None and not pending.done():
                return pending
            future = self._pool.submit(self.process, task_id, subject_id)
            self._pending[task_id] = future
        future.add_done_callback(lambda f: self._forget(task_id, f))
        return future

    def _forget(self, task_id: int, future: Future[None]) -> None:
        with self._pending_lock:
            if self._pending.get(task_id) is future:
                del self._pending[task_id]

    def is_in_flight(self, task_id: int) -> bool:
        """True while the task is queued in the pool or running."""
        with self._pending_lock:
            pending = self._pending.get(task_id)
            if pending is not None and not pending.done():
                return True
        return task_id in self._registry

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=True)
        self._registry.clear()

    def process(self, task_id: int, subject_id: int) -> None:
        """Process a task; a second call for an in-flight task is a no-op.

        Never raises: every failure ends as an ERROR record.
        """
        token = self._registry.try_acquire(task_id)
        if token is None:
            Log.info(f"Task {task_id} is already being processed, skipping")
            return

        timer = self._timer_factory(self._task_timeout, lambda: self._on_timeout(task_id, token))
        timer.start()
        Log.info(f"Processing task {task_id} for subject {subject_id}")
        try:
            self._run(task_id, subject_id, token)
        except TaskCancelledError as exc:
            Log.warning(f"Discarding result of task {task_id}: {exc}")
        except Exception as exc:
            Log.exception(f"Task {task_id} failed: {exc}")
            self._fail(task_id, str(exc) or type(exc).__name__, token)
        finally:
            timer.cancel()
            token.finish()
            self._registry.release(task_id, token)

    def _run(self, task_id: int, subject_id: int, token: RunToken) -> None:
        task = self._state.load(task_id)
        if task.is_terminal:
            Log.info(f"Task {task_id} is already {task.status.value}, nothing to do")
            return

        subject = self._subject_repo.find_by_id(subject_id)
        if subject is None:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

        # CREATING tasks resume as ANALYZING-pending.
        task = self._reach(task, TaskStatus.ANALYZING, PROGRESS_ANALYZING, LABEL_ANALYZING, token)
        if task.status is TaskStatus.ANALYZING and task.progress < PROGRESS_ANALYZED:
            label = self._analyze(subject, token)
            task = self._state.advance(task, TaskStatus.ANALYZING, PROGRESS_ANALYZED, label, token)

        task = self._reach(
            task, TaskStatus.PUBLISHING, PROGRESS_PUBLISHING, LABEL_PUBLISHING, token
        )
        if task.progress < PROGRESS_PUBLISHED:
            with token.active():
                self._publisher.publish(subject.id)
            task = self._state.advance(
                task, TaskStatus.PUBLISHING, PROGRESS_PUBLISHED, LABEL_PUBLISHED, token
            )

        self._state.advance(task, TaskStatus.COMPLETED, PROGRESS_COMPLETED, LABEL_COMPLETED, token)
        Log.info(f"Task {task_id} completed successfully")

    def _analyze(self, subject: Subject, token: RunToken) -> str:
        if subject.analysis_result is not None:
            Log.info(f"Subject {subject.id} already has an analysis result, reusing it")
            return LABEL_ANALYSIS_REUSED

        result = self._analyzer.analyze(subject)
        with token.active():
            self._subject_repo.save_analysis_result(subject.id, result.to_payload())
        return LABEL_ANALYZED_DEGRADED if result.degraded else LABEL_ANALYZED

    def _reach(
        self,
        task: TaskRecord,
        status: TaskStatus,
        progress: int,
        label: str,
        token: RunToken,
    ) -> TaskRecord:
        """Advance unless an earlier run already recorded this step or a later one."""
        if (task.status.rank, task.progress) >= (status.rank, progress):
            return task
        return self._state.advance(task, status, progress, label, token)

    def _fail(self, task_id: int, reason: str, token: RunToken) -> None:
        try:
            self._state.fail(self._state.load(task_id), reason, token)
        except TaskCancelledError:
            Log.warning(f"Task {task_id} already failed by timeout")
        except Exception as exc:
            Log.error(f"Could not mark task {task_id} as failed: {exc}")

    def _on_timeout(self, task_id: int, token: RunToken) -> None:
        if not token.cancel():
            return
        Log.error(f"Task {task_id} exceeded the timeout of {self._task_timeout / 60:g} minutes")
        try:
            self._state.fail_by_id(task_id, TIMEOUT_REASON)
        except Exception as exc:
            Log.error(f"Could not mark task {task_id} as timed out: {exc}")
        finally:
            self._registry.release(task_id, token)


def build_processor(
    settings: Settings,
    registry: InFlightRegistry | None = None,
) -> TaskProcessor:
    """Build a TaskProcessor with all required adapters."""
    store = TaskRepository()
    subject_repo = SubjectRepository()
    quality = QualityConfig(
        fill_rate_threshold=settings.fill_rate_threshold,
        description_min_length=settings.description_min_length,
        description_max_length=settings.description_max_length,
        title_max_length=settings.title_max_length,
    )
    executor = StageExecutor(
        InferenceClientFactory.create(settings),
        max_retries=settings.stage_max_retries,
        backoff_base_seconds=settings.stage_backoff_base_seconds,
        backoff_max_seconds=settings.stage_backoff_max_seconds,
    )
    analyzer = ListingAnalyzer(
        catalog=CatalogRepository(),
        executor=executor,
        requests=StageRequestBuilder(quality),
        scorer=QualityScorer(quality),
        reconcile_config=ReconcileConfig(
            catalog_confidence=settings.catalog_confidence,
            freeform_confidence=settings.freeform_confidence,
        ),
        excluded_attribute_ids=settings.catalog_excluded_attribute_ids,
        title_max_length=settings.title_max_length,
    )
    return TaskProcessor(
        state=TaskStateMachine(store),
        subject_repo=subject_repo,
        analyzer=analyzer,
        publisher=DraftPublisher(subject_repo),
        registry=registry or InFlightRegistry(),
        task_timeout_seconds=settings.task_timeout_seconds,
        max_workers=settings.max_concurrent_tasks,
    )
