"""
Unit tests for InvestmentState — the client's ordered, id-unique collection.
"""

import itertools

import pytest

from invtracker.client.state import InvestmentState

from .conftest import make_record


def _ids(state: InvestmentState):
    return [r.id for r in state]


@pytest.fixture()
def state():
    return InvestmentState()


class TestMutations:
    def test_starts_empty(self, state):
        assert state.investments == ()
        assert len(state) == 0

    def test_append_keeps_arrival_order(self, state):
        state.append(make_record(id="a"))
        state.append(make_record(id="b"))
        assert _ids(state) == ["a", "b"]

    def test_append_existing_id_replaces_in_place(self, state):
        state.append(make_record(id="a"))
        state.append(make_record(id="b"))
        state.append(make_record(id="a", holder_name="Bob"))
        assert _ids(state) == ["a", "b"]
        assert state.get("a").holder_name == "Bob"

    def test_replace_all_dedupes(self, state):
        state.replace_all(
            [make_record(id="a"), make_record(id="b"), make_record(id="a", return_rate=7)]
        )
        assert _ids(state) == ["a", "b"]
        assert state.get("a").return_rate == 7

    def test_replace_all_discards_previous(self, state):
        state.append(make_record(id="old"))
        state.replace_all([make_record(id="new")])
        assert _ids(state) == ["new"]

    def test_remove_by_id(self, state):
        state.replace_all([make_record(id="a"), make_record(id="b")])
        state.remove_by_id("a")
        assert _ids(state) == ["b"]
        assert "a" not in state

    def test_remove_unknown_is_noop(self, state):
        state.append(make_record(id="a"))
        state.remove_by_id("zzz")
        assert _ids(state) == ["a"]

    def test_replace_by_id_keeps_position(self, state):
        state.replace_all([make_record(id="a"), make_record(id="b"), make_record(id="c")])
        state.replace_by_id(make_record(id="b", investment_name="Renewed"))
        assert _ids(state) == ["a", "b", "c"]
        assert state.get("b").investment_name == "Renewed"

    def test_replace_unknown_is_noop(self, state):
        state.append(make_record(id="a"))
        state.replace_by_id(make_record(id="zzz"))
        assert _ids(state) == ["a"]

    def test_snapshot_is_immutable(self, state):
        state.append(make_record(id="a"))
        snapshot = state.investments
        state.append(make_record(id="b"))
        assert [r.id for r in snapshot] == ["a"]


class TestUniqueIds:
    """No sequence of mutations can produce two records with the same id."""

    OPS = [
        ("append", "a"),
        ("append", "b"),
        ("append", "a"),
        ("replace", "a"),
        ("remove", "b"),
        ("reload", "a"),
    ]

    @pytest.mark.parametrize("ops", list(itertools.permutations(OPS, 4)))
    def test_any_arrival_order(self, ops):
        state = InvestmentState()
        for op, inv_id in ops:
            record = make_record(id=inv_id)
            if op == "append":
                state.append(record)
            elif op == "replace":
                state.replace_by_id(record)
            elif op == "remove":
                state.remove_by_id(inv_id)
            else:
                state.replace_all([record, make_record(id="b"), record])
        ids = _ids(state)
        assert len(ids) == len(set(ids))


class TestSubscribe:
    def test_listener_receives_snapshots(self, state):
        seen = []
        state.subscribe(seen.append)
        state.append(make_record(id="a"))
        state.remove_by_id("a")
        assert [len(s) for s in seen] == [1, 0]

    def test_noop_mutation_does_not_notify(self, state):
        seen = []
        state.subscribe(seen.append)
        state.remove_by_id("missing")
        state.replace_by_id(make_record(id="missing"))
        assert seen == []

    def test_unsubscribe(self, state):
        seen = []
        unsubscribe = state.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        state.append(make_record(id="a"))
        assert seen == []
