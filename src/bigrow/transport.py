"""Contracts for the RPC stub and the request parts it is handed."""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from typing_extensions import TypedDict

from bigrow.errors import StatusCode


class CallOptions(TypedDict, total=False):
    app_profile_id: str
    headers: dict[str, str]


class Invocable(Protocol):
    def __call__(self, *args: Any, **kwargs: Any) -> Any: ...


class RowFilter(Protocol):
    def compile(self) -> Mapping[str, Any]: ...


class MutationSource(Protocol):
    def compile(self) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class Acknowledgment:
    index: int
    status_code: StatusCode | int
    status_message: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code == StatusCode.OK


@dataclass(frozen=True)
class AcknowledgmentBatch:
    entries: Sequence[Acknowledgment] = field(default_factory=tuple)


_END = object()


def open_stream(responses: Iterable[Any]) -> Iterator[Any]:
    """Pull the first item so failures raised while the stream opens surface here."""
    it = iter(responses)
    first = next(it, _END)
    if first is _END:
        return iter(())
    return itertools.chain([first], it)


class TableStub(Protocol):
    """Generated stub surface; every method performs one remote call."""

    def mutate_rows(
        self,
        table_name: str,
        entries: list[dict[str, Any]],
        options: CallOptions,
    ) -> Iterable[AcknowledgmentBatch]: ...

    def check_and_mutate_row(
        self,
        table_name: str,
        row_key: bytes,
        predicate_filter: Mapping[str, Any],
        true_mutations: list[dict[str, Any]],
        false_mutations: list[dict[str, Any]],
        options: CallOptions,
    ) -> bool: ...

    def read_modify_write_row(
        self,
        table_name: str,
        row_key: bytes,
        rules: list[Any],
        options: CallOptions,
    ) -> Any: ...

    def read_rows(
        self,
        table_name: str,
        row_keys: list[bytes],
        row_filter: Mapping[str, Any] | None,
        rows_limit: int | None,
        options: CallOptions,
    ) -> Iterable[Any]: ...
