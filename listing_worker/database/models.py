from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from listing_worker.tasks.models import TaskStatus


@dataclass
class TaskRecord:
    """Represents a row from the analysis_tasks table."""

    id: int
    subject_id: int | None
    status: TaskStatus
    progress: int = 0
    stage_label: str = ""
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class Subject:
    """Represents a row from the listing_subjects table."""

    id: int
    name: str
    category_id: int
    description: str = ""
    reference_url: str = ""
    package_contents: str = ""
    price: float | None = None
    image_urls: list[str] = field(default_factory=list)
    analysis_result: dict[str, Any] | None = None
    status: str = "PENDING"
