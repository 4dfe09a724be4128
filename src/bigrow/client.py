"""Table-scoped data client over a generated RPC stub."""

from __future__ import annotations

import logging as py_logging
import random
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from bigrow.batch import BatchMutationCoordinator
from bigrow.conditional import ConditionalMutation
from bigrow.config import ClientConfig, load_config
from bigrow.logging import configure_logging
from bigrow.mutations import Bytesish, RowMutation, to_bytes
from bigrow.read_modify_write import ReadModifyWrite
from bigrow.retry import RetryExecutor, run_with_retry
from bigrow.transport import CallOptions, RowFilter, TableStub, open_stream

logger = py_logging.getLogger(__name__)

UpsertRows = Mapping[Bytesish, Mapping[str, Mapping[Bytesish, Mapping[str, Any]]]]


class DataClient:
    def __init__(
        self,
        table_name: str,
        stub: TableStub,
        config: ClientConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if not table_name:
            raise ValueError("DataClient requires a table name")
        self.table_name = table_name
        self.stub = stub
        self.config = config or ClientConfig()
        self.sleep = sleep
        self.policy = self.config.backoff_policy(rng)
        self._batch = BatchMutationCoordinator(stub, table_name, policy=self.policy, sleep=sleep)

    @classmethod
    def from_config(
        cls,
        table_name: str,
        stub: TableStub,
        path: str | Path | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> DataClient:
        """Build a client from the TOML config at ``path`` and apply its logging settings."""
        config = load_config(path)
        configure_logging(config.log_level, log_file=config.log_file or None)
        logger.debug("Loaded client config table=%s app_profile=%s", table_name, config.app_profile_id)
        return cls(table_name, stub, config, sleep=sleep, rng=rng)

    def _options(self, options: CallOptions | None) -> CallOptions:
        merged = self.config.call_options()
        merged.update(options or {})
        return merged

    def mutate_rows(
        self,
        row_mutations: Iterable[RowMutation],
        options: CallOptions | None = None,
    ) -> None:
        self._batch.mutate_rows(row_mutations, self._options(options))

    def upsert(self, rows: UpsertRows, options: CallOptions | None = None) -> None:
        """Write cells given as ``{row_key: {family: {qualifier: {"value": ..., "timestamp_micros": ...}}}}``."""
        row_mutations: list[RowMutation] = []
        for row_key, families in rows.items():
            row_mutation = RowMutation(row_key)
            for family, qualifiers in families.items():
                for qualifier, cell in qualifiers.items():
                    if "value" not in cell:
                        raise ValueError(f"Cell {family}:{qualifier!r} in row {row_key!r} has no value")
                    row_mutation.upsert(family, qualifier, cell["value"], cell.get("timestamp_micros"))
            row_mutations.append(row_mutation)
        self.mutate_rows(row_mutations, options)

    def check_and_mutate_row(
        self,
        row_key: Bytesish,
        conditional: ConditionalMutation,
        options: CallOptions | None = None,
    ) -> bool:
        # not idempotent, one attempt only
        key = to_bytes(row_key)
        logger.debug("check_and_mutate_row table=%s row=%r", self.table_name, key)
        matched = self.stub.check_and_mutate_row(
            self.table_name,
            key,
            conditional.compile_predicate(),
            conditional.compile_true_branch(),
            conditional.compile_false_branch(),
            self._options(options),
        )
        return bool(matched)

    def read_modify_write_row(
        self,
        request: ReadModifyWrite,
        options: CallOptions | None = None,
    ) -> Any:
        rules = request.compile_rules()
        if not rules:
            raise ValueError("read_modify_write_row requires at least one rule")
        logger.debug(
            "read_modify_write_row table=%s row=%r rules=%s",
            self.table_name,
            request.row_key,
            len(rules),
        )
        return self.stub.read_modify_write_row(
            self.table_name,
            request.row_key,
            rules,
            self._options(options),
        )

    def read_rows(
        self,
        row_keys: Iterable[Bytesish] | None = None,
        row_filter: RowFilter | None = None,
        rows_limit: int | None = None,
        options: CallOptions | None = None,
    ) -> Iterator[Any]:
        """Open a row stream; rows are assembled by the stub and yielded lazily."""
        if rows_limit is not None and rows_limit < 1:
            raise ValueError(f"Invalid rows limit: {rows_limit}")
        keys = [to_bytes(key) for key in row_keys or []]
        compiled = row_filter.compile() if row_filter is not None else None

        def open_rows() -> Iterator[Any]:
            return open_stream(
                self.stub.read_rows(self.table_name, keys, compiled, rows_limit, self._options(options))
            )

        executor = RetryExecutor(open_rows, policy=self.policy, sleep=self.sleep, name="read_rows")
        return run_with_retry(executor)

    def read_row(
        self,
        row_key: Bytesish,
        row_filter: RowFilter | None = None,
        options: CallOptions | None = None,
    ) -> Any | None:
        rows = self.read_rows([row_key], row_filter=row_filter, rows_limit=1, options=options)
        return next(rows, None)
