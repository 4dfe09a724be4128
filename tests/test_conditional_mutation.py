from __future__ import annotations

import pytest

from bigrow.conditional import ConditionalMutation
from bigrow.mutations import MutationSet


class _ValueFilter:
    def __init__(self, regex: bytes) -> None:
        self.regex = regex
        self.compiled = 0

    def compile(self) -> dict[str, bytes]:
        self.compiled += 1
        return {"value_regex_filter": self.regex}


def test_predicate_only_compiles_empty_branches() -> None:
    conditional = ConditionalMutation(_ValueFilter(b"on"))

    assert conditional.compile_predicate() == {"value_regex_filter": b"on"}
    assert conditional.compile_true_branch() == []
    assert conditional.compile_false_branch() == []


def test_branches_delegate_to_mutation_sets() -> None:
    on_match = MutationSet().upsert("cf", "state", "seen")
    on_miss = MutationSet().delete_row()

    conditional = (
        ConditionalMutation(_ValueFilter(b"on"))
        .set_true_mutations(on_match)
        .set_false_mutations(on_miss)
    )

    assert conditional.compile_true_branch() == on_match.compile()
    assert conditional.compile_false_branch() == [{"delete_from_row": {}}]


def test_compiling_does_not_change_mutation_sets() -> None:
    on_match = MutationSet().upsert("cf", "state", "seen")
    conditional = ConditionalMutation(_ValueFilter(b"on")).set_true_mutations(on_match)

    conditional.compile_true_branch()
    conditional.compile_true_branch()

    assert len(on_match) == 1


def test_missing_predicate_is_rejected() -> None:
    with pytest.raises(ValueError):
        ConditionalMutation(None)  # type: ignore[arg-type]
