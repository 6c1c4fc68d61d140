class TaskError(Exception):
    """Base exception for all task-processing errors."""


class TaskNotFoundError(TaskError):
    """Raised when a task cannot be found in the store."""


class SubjectNotFoundError(TaskError):
    """Raised when the subject of a task cannot be found in the store."""


class CatalogNotFoundError(TaskError):
    """Raised when a category has no attribute definitions."""


class InvalidTransitionError(TaskError):
    """Raised when a state change breaks the forward order or monotonic progress."""


class TaskCancelledError(TaskError):
    """Raised when a run that lost the timeout race tries to write."""
