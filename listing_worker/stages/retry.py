import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from listing_worker.logging.logger import Log
from listing_worker.stages.exceptions import RetryError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    value: T
    attempts: int


def linear_backoff(base_seconds: float, max_seconds: float | None = None) -> Callable[[int], float]:
    """Delay after the n-th failed attempt: base * n, optionally capped."""

    def delay_for(failed_attempt: int) -> float:
        delay = base_seconds * failed_attempt
        if max_seconds is not None:
            delay = min(delay, max_seconds)
        return delay

    return delay_for


def retry_call(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    is_terminal: Callable[[BaseException], bool],
    delay_for: Callable[[int], float],
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Run operation until it succeeds, fails terminally or runs out of attempts.

    Sleeps delay_for(n) after the n-th failure, never before the first
    attempt and never after the last one.

    Raises:
        RetryError: with the last error, the number of attempts made and
            whether the failure was terminal.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            value = operation()
        except Exception as exc:
            if is_terminal(exc):
                Log.error(f"{label}: terminal error on attempt {attempt}, not retrying: {exc}")
                raise RetryError(
                    f"{label} failed with terminal error: {exc}",
                    last_error=exc,
                    attempts=attempt,
                    terminal=True,
                ) from exc
            if attempt == max_attempts:
                Log.error(f"{label}: attempt {attempt}/{max_attempts} failed, giving up: {exc}")
                raise RetryError(
                    f"{label} failed after {attempt} attempts: {exc}",
                    last_error=exc,
                    attempts=attempt,
                    terminal=False,
                ) from exc
            delay = delay_for(attempt)
            Log.warning(
                f"{label}: attempt {attempt}/{max_attempts} failed: {exc}. "
                f"Retrying in {delay:g}s"
            )
            sleep(delay)
        else:
            if attempt > 1:
                Log.info(f"{label}: succeeded on attempt {attempt}")
            return RetryOutcome(value=value, attempts=attempt)

    raise AssertionError("unreachable")
