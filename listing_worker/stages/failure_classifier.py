"""Terminal-versus-transient classification of inference failures."""

from listing_worker.inference.exceptions import InferenceTerminalError

# Markers of a request the provider will reject no matter how often it is sent.
TERMINAL_ERROR_PATTERNS: tuple[str, ...] = (
    "invalid_request_error",
    "invalid request",
    "invalid schema",
    "invalid_json_schema",
    "json_schema",
    "response_format",
    "invalid parameter",
    "invalid_parameter",
    "unsupported parameter",
    "unsupported_parameter",
    "unsupported value",
    "unsupported_value",
    "unrecognized request argument",
    "invalid type for",
    "missing required parameter",
)


def matched_terminal_pattern(message: str) -> str | None:
    """Return the first terminal marker found in an error message."""
    lowered = message.lower()
    for pattern in TERMINAL_ERROR_PATTERNS:
        if pattern in lowered:
            return pattern
    return None


def is_terminal_error(exc: BaseException) -> bool:
    """True when retrying cannot help; everything else is treated as transient."""
    if isinstance(exc, InferenceTerminalError):
        return True
    return matched_terminal_pattern(str(exc)) is not None
