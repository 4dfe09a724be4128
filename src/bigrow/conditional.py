"""Check-and-mutate request builder."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from bigrow.transport import MutationSource, RowFilter


class ConditionalMutation:
    """Predicate plus the mutations to apply when it does or does not match a row.

    The predicate and mutation sets are only read when compiling; branches
    that were never set compile to an empty list.
    """

    def __init__(self, predicate_filter: RowFilter) -> None:
        if predicate_filter is None:
            raise ValueError("ConditionalMutation requires a predicate filter")
        self.predicate_filter = predicate_filter
        self.true_mutations: MutationSource | None = None
        self.false_mutations: MutationSource | None = None

    def set_true_mutations(self, mutations: MutationSource) -> ConditionalMutation:
        self.true_mutations = mutations
        return self

    def set_false_mutations(self, mutations: MutationSource) -> ConditionalMutation:
        self.false_mutations = mutations
        return self

    def compile_predicate(self) -> Mapping[str, Any]:
        return self.predicate_filter.compile()

    def compile_true_branch(self) -> list[dict[str, Any]]:
        if self.true_mutations is None:
            return []
        return self.true_mutations.compile()

    def compile_false_branch(self) -> list[dict[str, Any]]:
        if self.false_mutations is None:
            return []
        return self.false_mutations.compile()
