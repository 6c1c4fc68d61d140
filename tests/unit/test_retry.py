from unittest.mock import MagicMock

import pytest

from listing_worker.stages.exceptions import RetryError
from listing_worker.stages.retry import linear_backoff, retry_call


def _never_terminal(exc: BaseException) -> bool:
    return False


class TestLinearBackoff:
    def test_grows_linearly(self) -> None:
        delay_for = linear_backoff(2.0)
        assert [delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 6.0]

    def test_is_capped(self) -> None:
        delay_for = linear_backoff(2.0, max_seconds=5.0)
        assert [delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 5.0]


class TestRetryCall:
    def test_first_success_does_not_sleep(self) -> None:
        sleep = MagicMock()

        outcome = retry_call(
            lambda: "ok",
            max_attempts=3,
            is_terminal=_never_terminal,
            delay_for=linear_backoff(2.0),
            sleep=sleep,
        )

        assert outcome.value == "ok"
        assert outcome.attempts == 1
        sleep.assert_not_called()

    def test_two_failures_then_success_sleeps_twice(self) -> None:
        operation = MagicMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        sleep = MagicMock()

        outcome = retry_call(
            operation,
            max_attempts=3,
            is_terminal=_never_terminal,
            delay_for=linear_backoff(2.0),
            sleep=sleep,
        )

        assert outcome.value == "ok"
        assert outcome.attempts == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0]

    def test_exhaustion_raises_with_last_error(self) -> None:
        last = ConnectionError("third")
        operation = MagicMock(side_effect=[ConnectionError("first"), ConnectionError("second"), last])
        sleep = MagicMock()

        with pytest.raises(RetryError) as exc_info:
            retry_call(
                operation,
                max_attempts=3,
                is_terminal=_never_terminal,
                delay_for=linear_backoff(2.0),
                sleep=sleep,
            )

        assert exc_info.value.last_error is last
        assert exc_info.value.attempts == 3
        assert exc_info.value.terminal is False
        assert sleep.call_count == 2

    def test_terminal_error_stops_immediately(self) -> None:
        operation = MagicMock(side_effect=ValueError("invalid schema"))
        sleep = MagicMock()

        with pytest.raises(RetryError) as exc_info:
            retry_call(
                operation,
                max_attempts=3,
                is_terminal=lambda exc: isinstance(exc, ValueError),
                delay_for=linear_backoff(2.0),
                sleep=sleep,
            )

        assert operation.call_count == 1
        assert exc_info.value.terminal is True
        assert exc_info.value.attempts == 1
        sleep.assert_not_called()

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            retry_call(
                lambda: None,
                max_attempts=0,
                is_terminal=_never_terminal,
                delay_for=linear_backoff(2.0),
            )
