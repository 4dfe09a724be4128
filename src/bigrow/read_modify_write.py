"""Read-modify-write request builder."""

from __future__ import annotations

from dataclasses import dataclass

from bigrow.mutations import Bytesish, to_bytes


@dataclass(frozen=True)
class ReadModifyWriteRule:
    family: str
    qualifier: bytes
    append_value: bytes | None = None
    increment_amount: int | None = None

    def __post_init__(self) -> None:
        if (self.append_value is None) == (self.increment_amount is None):
            raise ValueError("A rule must either append a value or increment by an amount")


class ReadModifyWrite:
    def __init__(self, row_key: Bytesish) -> None:
        self.row_key = to_bytes(row_key)
        self._rules: list[ReadModifyWriteRule] = []

    def __len__(self) -> int:
        return len(self._rules)

    def append_value(self, family: str, qualifier: Bytesish, value: Bytesish) -> ReadModifyWrite:
        self._rules.append(
            ReadModifyWriteRule(family=family, qualifier=to_bytes(qualifier), append_value=to_bytes(value))
        )
        return self

    def increment_value(self, family: str, qualifier: Bytesish, amount: int) -> ReadModifyWrite:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"Increment amount must be an int, got {type(amount)!r}")
        self._rules.append(
            ReadModifyWriteRule(family=family, qualifier=to_bytes(qualifier), increment_amount=amount)
        )
        return self

    def compile_rules(self) -> list[ReadModifyWriteRule]:
        # rules targeting the same column stay separate; the service applies them in order
        return list(self._rules)
