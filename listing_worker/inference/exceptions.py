class InferenceError(Exception):
    """Raised when an inference call fails. Retried unless terminal."""


class InferenceNetworkError(InferenceError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class InferenceTerminalError(InferenceError):
    """Raised when the provider rejects the request itself (schema, format, parameters)."""


class EmptyResponseError(InferenceError):
    """Raised when the provider returns no usable content."""
