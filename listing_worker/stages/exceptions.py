class RetryError(Exception):
    """Raised when an operation gives up, either exhausted or on a terminal error."""

    def __init__(self, message: str, *, last_error: Exception, attempts: int, terminal: bool) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts
        self.terminal = terminal
