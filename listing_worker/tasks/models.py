from dataclasses import dataclass, field
from enum import Enum


class TaskStatus(str, Enum):
    """Lifecycle states of an analysis task."""

    CREATING = "CREATING"
    ANALYZING = "ANALYZING"
    PUBLISHING = "PUBLISHING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"

    @property
    def rank(self) -> int:
        """Position in the forward order. ERROR sits outside the order."""
        return _STATUS_ORDER.get(self, -1)

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


_STATUS_ORDER: dict[TaskStatus, int] = {
    TaskStatus.CREATING: 0,
    TaskStatus.ANALYZING: 1,
    TaskStatus.PUBLISHING: 2,
    TaskStatus.COMPLETED: 3,
}

TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.ERROR})
RESUMABLE_STATUSES = (TaskStatus.CREATING, TaskStatus.ANALYZING, TaskStatus.PUBLISHING)

PROGRESS_SUBMITTED = 10
PROGRESS_ANALYZING = 30
PROGRESS_ANALYZED = 60
PROGRESS_PUBLISHING = 80
PROGRESS_PUBLISHED = 90
PROGRESS_COMPLETED = 100

LABEL_SUBMITTED = "Item accepted, analysis pending"
LABEL_ANALYZING = "Analyzing item with AI"
LABEL_ANALYZED = "AI analysis completed"
LABEL_ANALYZED_DEGRADED = "AI analysis completed with warnings"
LABEL_ANALYSIS_REUSED = "AI analysis already available"
LABEL_PUBLISHING = "Preparing for publishing"
LABEL_PUBLISHED = "Item ready for publishing"
LABEL_COMPLETED = "Listing analysis completed"

TIMEOUT_REASON = "processing timeout"
SUBJECT_MISSING_REASON = "subject record missing after restart"


@dataclass
class RecoveryReport:
    """Outcome of one startup recovery pass, as lists of task ids."""

    resumed: list[int] = field(default_factory=list)
    timed_out: list[int] = field(default_factory=list)
    orphaned: list[int] = field(default_factory=list)
    errors: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.resumed) + len(self.timed_out) + len(self.orphaned) + len(self.errors)
