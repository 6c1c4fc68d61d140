import time
from collections.abc import Callable
from typing import Any

from listing_worker.inference.client_base import BaseInferenceClient, InferenceResponse
from listing_worker.inference.exceptions import EmptyResponseError
from listing_worker.logging.logger import Log
from listing_worker.stages.exceptions import RetryError
from listing_worker.stages.failure_classifier import is_terminal_error
from listing_worker.stages.models import (
    RawTextPayload,
    StagePayload,
    StageRequest,
    StageResult,
    StructuredPayload,
)
from listing_worker.stages.retry import linear_backoff, retry_call


class StageExecutor:
    """Runs one inference call per stage with bounded retries and linear backoff."""

    def __init__(
        self,
        client: BaseInferenceClient,
        *,
        max_retries: int = 3,
        backoff_base_seconds: float = 2.0,
        backoff_max_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        is_terminal: Callable[[BaseException], bool] = is_terminal_error,
    ) -> None:
        self._client = client
        self._max_retries = max_retries
        self._delay_for = linear_backoff(backoff_base_seconds, backoff_max_seconds)
        self._sleep = sleep
        self._is_terminal = is_terminal

    def run_stage(self, request: StageRequest) -> StageResult:
        """Call the inference client; never raises for inference failures."""
        label = f"Stage {request.stage.value}"
        started = time.monotonic()
        try:
            outcome = retry_call(
                lambda: to_payload(self._client.invoke(request)),
                max_attempts=self._max_retries,
                is_terminal=self._is_terminal,
                delay_for=self._delay_for,
                sleep=self._sleep,
                label=label,
            )
        except RetryError as exc:
            return StageResult.failed(
                request.stage,
                error=str(exc.last_error),
                attempts=exc.attempts,
                terminal=exc.terminal,
                elapsed_seconds=time.monotonic() - started,
            )

        elapsed = time.monotonic() - started
        Log.info(f"{label} completed in {elapsed:.1f}s after {outcome.attempts} attempt(s)")
        return StageResult.succeeded(
            request.stage,
            outcome.value,
            attempts=outcome.attempts,
            elapsed_seconds=elapsed,
        )


def to_payload(response: InferenceResponse) -> StagePayload:
    """Normalize a provider response into a stage payload.

    Raises:
        EmptyResponseError: if the response carries no usable content.
    """
    if isinstance(response, list):
        text = _message_text(response)
        if not text:
            raise EmptyResponseError("Response envelope has no message text")
        return RawTextPayload(text)
    if isinstance(response, dict):
        return StructuredPayload(response)
    if isinstance(response, str) and response.strip():
        return RawTextPayload(response)
    raise EmptyResponseError("AI returned empty response")


def _message_text(elements: list[Any]) -> str:
    message = next((el for el in elements if _field(el, "type") == "message"), None)
    if message is None:
        return ""
    content = _field(message, "content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    for part in content:
        if isinstance(part, str):
            return part
        text = _field(part, "text")
        if (_field(part, "type") == "output_text" or text) and isinstance(text, str):
            return text
    return ""


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)
