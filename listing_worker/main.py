from listing_worker.config.settings import Settings
from listing_worker.database.connection import close_pool, init_pool
from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.database.repositories.task_repository import TaskRepository
from listing_worker.logging.logger import Log
from listing_worker.tasks.processor import build_processor
from listing_worker.tasks.recovery import RecoveryInitializer
from listing_worker.tasks.state_machine import TaskStateMachine
from listing_worker.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> recover -> poll."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    processor = None
    try:
        processor = build_processor(settings)
        task_repo = TaskRepository()
        recovery = RecoveryInitializer(
            store=task_repo,
            state=TaskStateMachine(task_repo),
            subject_repo=SubjectRepository(),
            processor=processor,
            task_timeout_seconds=settings.task_timeout_seconds,
        )
        recovery.run()
        worker = Worker(task_repo, processor, settings)
        worker.run()
    finally:
        if processor is not None:
            processor.shutdown()
        close_pool()


if __name__ == "__main__":
    main()
