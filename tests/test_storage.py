"""
Test suite for the exchange storage context.

Covers:
  - Table reads / writes and index-keyed list tables
  - Change-set commit and discard, including nesting
  - Event buffering inside change-sets
  - Snapshot / restore and deterministic iteration
"""

import pytest

from pairdex.exceptions import InvalidPath
from pairdex.exchange.storage import TABLES, ExchangeStorage


@pytest.fixture
def storage() -> ExchangeStorage:
    return ExchangeStorage()


class TestTables:

    def test_get_default(self, storage):
        assert storage.get("k_last", "missing") is None
        assert storage.get("k_last", "missing", 0) == 0

    def test_set_get_delete(self, storage):
        storage.set("native_ledger", "alice", 10)
        assert storage.get("native_ledger", "alice") == 10
        assert storage.contains("native_ledger", "alice")
        storage.delete("native_ledger", "alice")
        assert not storage.contains("native_ledger", "alice")

    def test_unknown_table(self, storage):
        with pytest.raises(KeyError):
            storage.get("orders", 1)

    def test_append_assigns_indices(self, storage):
        assert storage.append("foreign_list", "a") == 0
        assert storage.append("foreign_list", "b") == 1
        assert storage.values_in_order("foreign_list") == ["a", "b"]
        assert storage.count("foreign_list") == 2

    def test_all_tables_exist(self, storage):
        for name in TABLES:
            assert storage.items(name) == {}


class TestChangeSets:

    def test_commit(self, storage):
        with storage.transaction():
            storage.set("native_ledger", "alice", 5)
            assert storage.get("native_ledger", "alice") == 5
        assert storage.get("native_ledger", "alice") == 5
        assert storage.depth == 0

    def test_discard_on_error(self, storage):
        storage.set("native_ledger", "alice", 1)
        with pytest.raises(InvalidPath):
            with storage.transaction():
                storage.set("native_ledger", "alice", 5)
                storage.set("native_ledger", "bob", 7)
                raise InvalidPath()
        assert storage.get("native_ledger", "alice") == 1
        assert not storage.contains("native_ledger", "bob")
        assert storage.depth == 0

    def test_nested_inner_discard_keeps_outer(self, storage):
        with storage.transaction():
            storage.set("native_ledger", "alice", 1)
            with pytest.raises(InvalidPath):
                with storage.transaction():
                    storage.set("native_ledger", "alice", 2)
                    raise InvalidPath()
            assert storage.get("native_ledger", "alice") == 1
        assert storage.get("native_ledger", "alice") == 1

    def test_nested_commit_reaches_tables(self, storage):
        with storage.transaction():
            with storage.transaction():
                storage.set("native_ledger", "alice", 3)
            assert storage.depth == 1
        assert storage.get("native_ledger", "alice") == 3

    def test_delete_inside_layer(self, storage):
        storage.set("native_ledger", "alice", 1)
        with storage.transaction():
            storage.delete("native_ledger", "alice")
            assert storage.get("native_ledger", "alice", 0) == 0
            assert storage.items("native_ledger") == {}
        assert not storage.contains("native_ledger", "alice")

    def test_out_of_order_close(self, storage):
        outer = storage.transaction()
        outer.__enter__()
        inner = storage.transaction()
        inner.__enter__()
        with pytest.raises(RuntimeError):
            outer.__exit__(None, None, None)
        assert storage.depth == 2

    def test_append_inside_layer(self, storage):
        storage.append("foreign_list", "a")
        with pytest.raises(InvalidPath):
            with storage.transaction():
                assert storage.append("foreign_list", "b") == 1
                raise InvalidPath()
        assert storage.values_in_order("foreign_list") == ["a"]


class TestEvents:

    def test_events_commit_with_layer(self, storage):
        with storage.transaction():
            storage.deposit_event("created")
            assert storage.events == []
        assert storage.events == ["created"]

    def test_events_discarded_with_layer(self, storage):
        storage.deposit_event("before")
        with pytest.raises(InvalidPath):
            with storage.transaction():
                storage.deposit_event("lost")
                raise InvalidPath()
        assert storage.events == ["before"]

    def test_take_events_clears(self, storage):
        storage.deposit_event("one")
        assert storage.take_events() == ["one"]
        assert storage.events == []


class TestSnapshots:

    def test_restore(self, storage):
        storage.set("native_ledger", "alice", 1)
        snap = storage.snapshot()
        storage.set("native_ledger", "alice", 2)
        storage.set("k_last", "pair", 9)
        storage.restore(snap)
        assert storage.get("native_ledger", "alice") == 1
        assert not storage.contains("k_last", "pair")

    def test_snapshot_is_a_copy(self, storage):
        snap = storage.snapshot()
        storage.set("native_ledger", "alice", 1)
        assert snap["native_ledger"] == {}

    def test_open_layer_blocks_snapshot(self, storage):
        with storage.transaction():
            with pytest.raises(RuntimeError):
                storage.snapshot()
            with pytest.raises(RuntimeError):
                storage.restore({})

    def test_committed_items_are_ordered(self, storage):
        storage.set("native_ledger", "bob", 2)
        storage.set("native_ledger", "alice", 1)
        names = [name for name, _ in storage.committed_items()]
        assert names == sorted(TABLES)
        rows = dict(storage.committed_items())["native_ledger"]
        assert rows == [("alice", 1), ("bob", 2)]
