"""Multi-row write with aggregated per-row failure reporting."""

from __future__ import annotations

import logging as py_logging
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from bigrow.errors import FailedEntry, PartialBatchFailure, ProtocolViolation, StatusCode
from bigrow.mutations import RowMutation
from bigrow.retry import BackoffPolicy, RetryExecutor, run_with_retry
from bigrow.transport import Acknowledgment, AcknowledgmentBatch, CallOptions, TableStub, open_stream

logger = py_logging.getLogger(__name__)


def _acknowledgments(batch: AcknowledgmentBatch) -> Iterator[Acknowledgment]:
    entries = getattr(batch, "entries", None)
    if entries is None:
        raise ProtocolViolation(
            "Malformed mutate_rows response: batch has no entries.",
            hint=f"Received {type(batch).__name__}",
        )
    try:
        return iter(entries)
    except TypeError as exc:
        raise ProtocolViolation(
            "Malformed mutate_rows response: batch entries are not iterable.",
            hint=f"Received {type(entries).__name__}",
        ) from exc


def _checked_index(ack: Acknowledgment, entry_count: int) -> int:
    index = getattr(ack, "index", None)
    if isinstance(index, bool) or not isinstance(index, int):
        raise ProtocolViolation(f"Malformed acknowledgment index: {index!r}")
    if index < 0 or index >= entry_count:
        raise ProtocolViolation(
            f"Acknowledgment index {index} is outside the submitted batch.",
            hint=f"Batch holds {entry_count} entries",
        )
    return index


def _checked_code(ack: Acknowledgment) -> StatusCode:
    raw = getattr(ack, "status_code", None)
    try:
        return StatusCode(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolViolation(f"Unknown acknowledgment status code: {raw!r}") from exc


class BatchMutationCoordinator:
    def __init__(
        self,
        stub: TableStub,
        table_name: str,
        *,
        policy: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stub = stub
        self.table_name = table_name
        self.policy = policy or BackoffPolicy()
        self.sleep = sleep

    def _open_stream(
        self,
        entries: list[dict[str, Any]],
        options: CallOptions,
    ) -> Iterator[AcknowledgmentBatch]:
        return open_stream(self.stub.mutate_rows(self.table_name, entries, options))

    def mutate_rows(
        self,
        row_mutations: Iterable[RowMutation],
        options: CallOptions | None = None,
    ) -> None:
        """Write every row mutation in one call.

        Raises ``PartialBatchFailure`` naming each rejected row when the
        service refuses any entry. An empty input performs no call.
        """
        mutations = list(row_mutations)
        if not mutations:
            logger.debug("Skipping mutate_rows with empty batch table=%s", self.table_name)
            return

        entries = [mutation.to_entry() for mutation in mutations]
        executor = RetryExecutor(
            self._open_stream,
            policy=self.policy,
            sleep=self.sleep,
            name="mutate_rows",
        )
        logger.debug("Submitting %s entries table=%s", len(entries), self.table_name)
        stream = run_with_retry(executor, entries, dict(options or {}))

        failures: dict[int, FailedEntry] = {}
        failure_code = StatusCode.OK
        failure_message = ""
        for batch in stream:
            for ack in _acknowledgments(batch):
                try:
                    index = _checked_index(ack, len(entries))
                    code = _checked_code(ack)
                except ProtocolViolation as exc:
                    logger.error("Protocol violation in mutate_rows table=%s: %s", self.table_name, exc)
                    raise
                if code == StatusCode.OK:
                    continue
                # last failing acknowledgment on the stream is reported as the cause
                failure_code = code
                failure_message = getattr(ack, "status_message", "")
                failures.pop(index, None)
                failures[index] = FailedEntry(
                    index=index,
                    row_key=mutations[index].row_key,
                    status_code=code,
                    message=failure_message,
                )

        if not failures:
            logger.debug("mutate_rows succeeded entries=%s table=%s", len(entries), self.table_name)
            return

        logger.warning(
            "mutate_rows rejected %s of %s entries table=%s code=%s",
            len(failures),
            len(entries),
            self.table_name,
            failure_code.name,
        )
        raise PartialBatchFailure(failure_message, code=failure_code, failures=failures)
