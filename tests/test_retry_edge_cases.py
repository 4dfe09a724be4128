"""Backoff policy edge case tests."""

from __future__ import annotations

import random

from bigrow.errors import StatusCode
from bigrow.retry import MAX_DELAY_MICROS, RETRYABLE_CODES, BackoffPolicy


class _FixedRandom(random.Random):
    def __init__(self, value: int) -> None:
        super().__init__()
        self.value = value

    def randint(self, a: int, b: int) -> int:
        assert (a, b) == (0, 1_000_000)
        return self.value


def test_default_retryable_codes_are_the_three_transient_codes() -> None:
    assert RETRYABLE_CODES == {
        StatusCode.DEADLINE_EXCEEDED,
        StatusCode.ABORTED,
        StatusCode.UNAVAILABLE,
    }


def test_next_delay_uses_attempt_exponent_plus_jitter() -> None:
    policy = BackoffPolicy(rng=_FixedRandom(250_000))

    assert policy.next_delay(1) == 2_250_000
    assert policy.next_delay(2) == 4_250_000
    assert policy.next_delay(3) == 8_250_000


def test_next_delay_is_clipped_to_ceiling() -> None:
    policy = BackoffPolicy(rng=_FixedRandom(1_000_000))

    assert policy.next_delay(6) == MAX_DELAY_MICROS
    assert policy.next_delay(40) == MAX_DELAY_MICROS


def test_first_attempt_is_always_eligible() -> None:
    policy = BackoffPolicy()

    assert policy.is_retry_eligible(StatusCode.PERMISSION_DENIED, 0) is True
    assert policy.is_retry_eligible(StatusCode.OK, 0, 0) is True


def test_terminal_code_is_never_retried() -> None:
    policy = BackoffPolicy()

    assert policy.is_retry_eligible(StatusCode.INVALID_ARGUMENT, 1) is False
    assert policy.is_retry_eligible(StatusCode.NOT_FOUND, 2, 10) is False


def test_retryable_code_stops_at_budget() -> None:
    policy = BackoffPolicy()

    assert policy.is_retry_eligible(StatusCode.UNAVAILABLE, 2) is True
    assert policy.is_retry_eligible(StatusCode.UNAVAILABLE, 3) is False
    assert policy.is_retry_eligible(StatusCode.UNAVAILABLE, 3, 5) is True


def test_plain_integer_codes_are_classified() -> None:
    policy = BackoffPolicy()

    assert policy.is_retry_eligible(14, 1) is True
    assert policy.is_retry_eligible(13, 1) is False


def test_substituted_classification() -> None:
    policy = BackoffPolicy(retryable_codes=frozenset({StatusCode.RESOURCE_EXHAUSTED}))

    assert policy.is_retry_eligible(StatusCode.RESOURCE_EXHAUSTED, 1) is True
    assert policy.is_retry_eligible(StatusCode.UNAVAILABLE, 1) is False
