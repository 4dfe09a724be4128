"""Column mutation records and the builders that accumulate them."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

Bytesish = str | bytes
CellValue = str | bytes | int

SERVER_TIMESTAMP = -1


def to_bytes(value: Bytesish) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Expected str or bytes, got {type(value)!r}")


def encode_value(value: CellValue) -> bytes:
    # bool is an int subclass but never a valid cell value
    if isinstance(value, bool):
        raise TypeError("Boolean cell values are not supported")
    if isinstance(value, int):
        return struct.pack(">q", value)
    return to_bytes(value)


class Mutation:
    def to_wire(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class SetCell(Mutation):
    family: str
    qualifier: bytes
    value: bytes
    timestamp_micros: int = SERVER_TIMESTAMP

    def to_wire(self) -> dict[str, Any]:
        return {
            "set_cell": {
                "family_name": self.family,
                "column_qualifier": self.qualifier,
                "value": self.value,
                "timestamp_micros": self.timestamp_micros,
            }
        }


@dataclass(frozen=True)
class DeleteFromColumn(Mutation):
    family: str
    qualifier: bytes
    start_micros: int | None = None
    end_micros: int | None = None

    def to_wire(self) -> dict[str, Any]:
        time_range: dict[str, int] = {}
        if self.start_micros is not None:
            time_range["start_timestamp_micros"] = self.start_micros
        if self.end_micros is not None:
            time_range["end_timestamp_micros"] = self.end_micros
        payload: dict[str, Any] = {
            "family_name": self.family,
            "column_qualifier": self.qualifier,
        }
        if time_range:
            payload["time_range"] = time_range
        return {"delete_from_column": payload}


@dataclass(frozen=True)
class DeleteFromFamily(Mutation):
    family: str

    def to_wire(self) -> dict[str, Any]:
        return {"delete_from_family": {"family_name": self.family}}


@dataclass(frozen=True)
class DeleteFromRow(Mutation):
    def to_wire(self) -> dict[str, Any]:
        return {"delete_from_row": {}}


class MutationSet:
    """Ordered column mutations; compiles to the wire mutation list."""

    def __init__(self) -> None:
        self._mutations: list[Mutation] = []

    def __len__(self) -> int:
        return len(self._mutations)

    @property
    def mutations(self) -> list[Mutation]:
        return list(self._mutations)

    def upsert(
        self,
        family: str,
        qualifier: Bytesish,
        value: CellValue,
        timestamp_micros: int | None = None,
    ) -> MutationSet:
        self._mutations.append(
            SetCell(
                family=family,
                qualifier=to_bytes(qualifier),
                value=encode_value(value),
                timestamp_micros=SERVER_TIMESTAMP if timestamp_micros is None else timestamp_micros,
            )
        )
        return self

    def delete_from_column(
        self,
        family: str,
        qualifier: Bytesish,
        start_micros: int | None = None,
        end_micros: int | None = None,
    ) -> MutationSet:
        if start_micros is not None and end_micros is not None and start_micros > end_micros:
            raise ValueError(f"Invalid time range: {start_micros} > {end_micros}")
        self._mutations.append(
            DeleteFromColumn(
                family=family,
                qualifier=to_bytes(qualifier),
                start_micros=start_micros,
                end_micros=end_micros,
            )
        )
        return self

    def delete_from_family(self, family: str) -> MutationSet:
        self._mutations.append(DeleteFromFamily(family=family))
        return self

    def delete_row(self) -> MutationSet:
        self._mutations.append(DeleteFromRow())
        return self

    def compile(self) -> list[dict[str, Any]]:
        return [mutation.to_wire() for mutation in self._mutations]


class RowMutation(MutationSet):
    def __init__(self, row_key: Bytesish) -> None:
        super().__init__()
        self.row_key = to_bytes(row_key)

    def to_entry(self) -> dict[str, Any]:
        return {"row_key": self.row_key, "mutations": self.compile()}
