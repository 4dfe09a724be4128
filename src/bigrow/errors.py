"""Status codes and the client error model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class StatusCode(IntEnum):
    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


@dataclass
class BigrowError(Exception):
    message: str
    code: StatusCode = StatusCode.UNKNOWN
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class RemoteCallError(BigrowError):
    """Failure reported by the transport for a whole call."""


@dataclass
class ProtocolViolation(BigrowError):
    """The remote side answered with something the request cannot explain."""

    code: StatusCode = StatusCode.INTERNAL


@dataclass(frozen=True)
class FailedEntry:
    index: int
    row_key: bytes
    status_code: StatusCode
    message: str


@dataclass
class PartialBatchFailure(BigrowError):
    """Batch call succeeded but the service rejected one or more entries.

    ``message`` and ``code`` carry the representative status, which is the
    last failing acknowledgment seen on the stream. ``failures`` maps entry
    index to the failed row in arrival order.
    """

    failures: dict[int, FailedEntry] = field(default_factory=dict)

    @property
    def row_keys(self) -> list[bytes]:
        return [entry.row_key for entry in self.failures.values()]


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."


def describe_partial_failure(error: PartialBatchFailure) -> str:
    lines = [user_facing_error(f"{len(error.failures)} row(s) failed: {error.message}")]
    for index in sorted(error.failures):
        entry = error.failures[index]
        lines.append(
            f"  [{index}] {entry.row_key!r} {entry.status_code.name}: {entry.message}"
        )
    return "\n".join(lines)
