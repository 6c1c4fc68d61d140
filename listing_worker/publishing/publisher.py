from abc import ABC, abstractmethod

from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.logging.logger import Log

DRAFT_STATUS = "DRAFT"


class BasePublisher(ABC):
    """Contract for the handoff of an analyzed subject to publishing."""

    @abstractmethod
    def publish(self, subject_id: int) -> None:
        """Hand the subject over. Failures are fatal to the task.

        Raises:
            Exception: any error aborts the task with that message.
        """


class DraftPublisher(BasePublisher):
    """Marks the subject as a draft ready for marketplace publishing."""

    def __init__(self, subject_repo: SubjectRepository) -> None:
        self._subject_repo = subject_repo

    def publish(self, subject_id: int) -> None:
        self._subject_repo.update_status(subject_id, DRAFT_STATUS)
        Log.info(f"Subject {subject_id} marked as {DRAFT_STATUS}")
