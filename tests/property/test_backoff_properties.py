from __future__ import annotations

import random

from hypothesis import given
from hypothesis import strategies as st

from bigrow.errors import StatusCode
from bigrow.retry import MAX_DELAY_MICROS, RETRYABLE_CODES, BackoffPolicy

_TERMINAL_CODES = [code for code in StatusCode if code not in RETRYABLE_CODES]


@given(st.integers(min_value=1, max_value=200), st.integers(min_value=0, max_value=2**32))
def test_next_delay_never_exceeds_ceiling(attempt: int, seed: int) -> None:
    policy = BackoffPolicy(rng=random.Random(seed))

    delay = policy.next_delay(attempt)

    assert 0 < delay <= MAX_DELAY_MICROS


@given(st.integers(min_value=1, max_value=60), st.integers(min_value=0, max_value=2**32))
def test_next_delay_lower_bound_grows_with_attempts(attempt: int, seed: int) -> None:
    policy = BackoffPolicy(rng=random.Random(seed))

    delay = policy.next_delay(attempt)

    assert delay >= min(2**attempt * 1_000_000, MAX_DELAY_MICROS)
    assert delay <= 2**attempt * 1_000_000 + 1_000_000


@given(st.sampled_from(list(StatusCode)), st.integers(min_value=0, max_value=20))
def test_first_attempt_is_eligible_for_any_code(code: StatusCode, max_attempts: int) -> None:
    assert BackoffPolicy().is_retry_eligible(code, 0, max_attempts) is True


@given(
    st.sampled_from(_TERMINAL_CODES),
    st.integers(min_value=1, max_value=50),
    st.integers(min_value=0, max_value=50),
)
def test_terminal_codes_are_never_eligible_after_first_attempt(
    code: StatusCode,
    attempts: int,
    max_attempts: int,
) -> None:
    assert BackoffPolicy().is_retry_eligible(code, attempts, max_attempts) is False


@given(
    st.sampled_from(sorted(RETRYABLE_CODES)),
    st.integers(min_value=1, max_value=20),
    st.integers(min_value=0, max_value=20),
)
def test_retryable_codes_respect_attempt_budget(
    code: StatusCode,
    max_attempts: int,
    extra: int,
) -> None:
    policy = BackoffPolicy()

    assert policy.is_retry_eligible(code, max_attempts + extra, max_attempts) is False
    if max_attempts > 1:
        assert policy.is_retry_eligible(code, max_attempts - 1, max_attempts) is True
