from unittest.mock import MagicMock

import pytest

from listing_worker.database.repositories.subject_repository import SubjectRepository
from listing_worker.publishing.publisher import DraftPublisher
from listing_worker.tasks.exceptions import SubjectNotFoundError


class TestDraftPublisher:
    def test_marks_subject_as_draft(self) -> None:
        subject_repo = MagicMock(spec=SubjectRepository)

        DraftPublisher(subject_repo).publish(10)

        subject_repo.update_status.assert_called_once_with(10, "DRAFT")

    def test_propagates_repository_errors(self) -> None:
        subject_repo = MagicMock(spec=SubjectRepository)
        subject_repo.update_status.side_effect = SubjectNotFoundError("Subject 10 not found")

        with pytest.raises(SubjectNotFoundError):
            DraftPublisher(subject_repo).publish(10)
