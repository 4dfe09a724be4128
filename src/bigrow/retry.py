"""Retry/backoff helpers for remote calls."""

from __future__ import annotations

import logging as py_logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from bigrow.errors import RemoteCallError, StatusCode
from bigrow.transport import Invocable

logger = py_logging.getLogger(__name__)

MAX_ATTEMPTS = 3
MAX_DELAY_MICROS = 60_000_000
JITTER_MICROS = 1_000_000
BASE_DELAY_MICROS = 1_000_000
RETRYABLE_CODES = frozenset(
    {
        StatusCode.DEADLINE_EXCEEDED,
        StatusCode.ABORTED,
        StatusCode.UNAVAILABLE,
    }
)


@dataclass(frozen=True)
class BackoffPolicy:
    max_attempts: int = MAX_ATTEMPTS
    max_delay_micros: int = MAX_DELAY_MICROS
    retryable_codes: frozenset[StatusCode] = RETRYABLE_CODES
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def next_delay(self, attempt_number: int) -> int:
        """Delay in microseconds before the retry following ``attempt_number`` attempts."""
        jitter = self.rng.randint(0, JITTER_MICROS)
        return min(jitter + (2**attempt_number) * BASE_DELAY_MICROS, self.max_delay_micros)

    def is_retry_eligible(
        self,
        status_code: StatusCode | int,
        attempts_made: int,
        max_attempts: int | None = None,
    ) -> bool:
        if attempts_made == 0:
            return True
        limit = self.max_attempts if max_attempts is None else max_attempts
        return status_code in self.retryable_codes and attempts_made < limit


def _sleep_micros(sleep: Callable[[float], None], micros: int) -> None:
    sleep(micros / 1_000_000)


class RetryExecutor:
    """Runs one attempt of a call per ``execute_once``; the caller owns the loop."""

    def __init__(
        self,
        call: Invocable,
        *,
        policy: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "",
    ) -> None:
        self.call = call
        self.policy = policy or BackoffPolicy()
        self.sleep = sleep
        self.name = name or getattr(call, "__name__", "call")
        self.attempts_made = 0

    def execute_once(self, *args: Any, **kwargs: Any) -> Any:
        if self.attempts_made > 0:
            delay = self.policy.next_delay(self.attempts_made)
            logger.debug(
                "Backing off before retry call=%s attempt=%s delay_us=%s",
                self.name,
                self.attempts_made + 1,
                delay,
            )
            _sleep_micros(self.sleep, delay)
        self.attempts_made += 1
        return self.call(*args, **kwargs)

    def should_retry(self, status_code: StatusCode | int) -> bool:
        return self.policy.is_retry_eligible(status_code, self.attempts_made)


def run_with_retry(executor: RetryExecutor, *args: Any, **kwargs: Any) -> Any:
    """Call ``executor`` until it succeeds or its policy rules out another attempt.

    Only ``RemoteCallError`` is considered for retry; anything else propagates
    from the first attempt that raises it.
    """
    while True:
        try:
            return executor.execute_once(*args, **kwargs)
        except RemoteCallError as exc:
            if not executor.should_retry(exc.code):
                logger.debug(
                    "Giving up call=%s attempts=%s code=%s",
                    executor.name,
                    executor.attempts_made,
                    exc.code,
                )
                raise
            logger.warning(
                "Retryable failure call=%s attempt=%s/%s code=%s message=%s",
                executor.name,
                executor.attempts_made,
                executor.policy.max_attempts,
                exc.code,
                exc.message,
            )
