"""Tests for pool state and leaf ingestion."""

import pytest

from zasp.core.merkle_tree import MerkleTree
from zasp.core.pool import PoolState
from zasp.utils.encoding import to_canonical_hex
from zasp.exceptions import PersistenceError, TreeHeightExceededError

from conftest import TEST_TREE_HEIGHT

NOTE_A = "0x" + "a" * 64
NOTE_B = "0x" + "b" * 64


class TestAddLeaf:
    """Tests for add_leaf."""

    def test_add_first_leaf(self, pool, store):
        assert pool.add_leaf(0x111, NOTE_A, "0x64") is True

        key = to_canonical_hex(0x111)
        assert pool.commitments[key] == 0
        assert pool.commitment_to_amount[key] == "0x64"
        assert pool.note_to_commitment[NOTE_A] == key
        assert len(pool.tree) == 1
        assert store.find_leaf(key).index == 0

    def test_indices_are_sequential(self, pool):
        for i, commitment in enumerate([0x1, 0x2, 0x3]):
            pool.add_leaf(commitment, None, "0x1")
            assert pool.commitments[to_canonical_hex(commitment)] == i

    def test_idempotent(self, pool, store):
        pool.add_leaf(0x111, NOTE_A, "0x64")
        root = pool.tree.root

        assert pool.add_leaf(0x111, NOTE_A, "0x64") is False
        assert len(pool.tree) == 1
        assert len(store.list_leaves()) == 1
        assert pool.tree.root == root

    def test_without_note_hash(self, pool):
        pool.add_leaf(0x111, None, "0x0")
        assert pool.note_to_commitment == {}

    def test_repairs_from_existing_row(self, pool, store):
        """A row stored earlier wins over the locally computed index and amount."""
        key = to_canonical_hex(0x222)
        store.insert_leaf_if_absent(key, 0, NOTE_B, "0x999")

        assert pool.add_leaf(0x222, NOTE_A, "0x1") is True
        assert pool.commitments[key] == 0
        assert pool.commitment_to_amount[key] == "0x999"
        assert pool.note_to_commitment[NOTE_B] == key

    def test_store_failure_leaves_memory_untouched(self, pool, monkeypatch):
        def broken_insert(*args, **kwargs):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(pool.store, "insert_leaf_if_absent", broken_insert)

        with pytest.raises(PersistenceError):
            pool.add_leaf(0x111, NOTE_A, "0x1")
        assert pool.commitments == {}
        assert len(pool.tree) == 0

    def test_missing_row_after_own_insert_uses_local_index(self, pool, store, monkeypatch):
        monkeypatch.setattr(pool.store, "find_leaf", lambda commitment: None)

        assert pool.add_leaf(0x111, NOTE_A, "0x1") is True
        key = to_canonical_hex(0x111)
        assert pool.commitments[key] == 0
        assert pool.commitment_to_amount[key] == "0x1"
        assert len(pool.tree) == 1

    def test_failed_reread_keeps_indices_unique(self, pool, store, monkeypatch):
        """A committed insert whose re-read fails still advances the tree."""
        real_find = store.find_leaf
        failures = []

        def find_failing_once(commitment):
            if not failures:
                failures.append(commitment)
                raise PersistenceError("connection reset")
            return real_find(commitment)

        monkeypatch.setattr(pool.store, "find_leaf", find_failing_once)

        for commitment in (0x111, 0x222, 0x333):
            assert pool.add_leaf(commitment, None, "0x1") is True

        rows = [(leaf.commitment, leaf.index) for leaf in store.list_leaves()]
        assert [index for _, index in rows] == [0, 1, 2]
        assert {c: i for c, i in rows} == pool.commitments

        reloaded = PoolState.load(store, tree_height=TEST_TREE_HEIGHT)
        assert reloaded.commitments == pool.commitments
        assert reloaded.tree.root == pool.tree.root

    def test_failed_reread_of_existing_row_raises(self, pool, store, monkeypatch):
        store.insert_leaf_if_absent(to_canonical_hex(0x111), 0, None, "0x1")

        def broken_find(commitment):
            raise PersistenceError("connection reset")

        monkeypatch.setattr(pool.store, "find_leaf", broken_find)
        with pytest.raises(PersistenceError):
            pool.add_leaf(0x111, None, "0x1")
        assert pool.commitments == {}
        assert len(pool.tree) == 0

    def test_full_tree_stores_nothing(self, store):
        pool = PoolState(store, tree_height=1)
        pool.add_leaf(0x1, None, "0x1")
        pool.add_leaf(0x2, None, "0x1")

        with pytest.raises(TreeHeightExceededError):
            pool.add_leaf(0x3, None, "0x1")
        assert store.find_leaf(to_canonical_hex(0x3)) is None
        assert len(store.list_leaves()) == 2

    def test_note_hash_last_write_wins(self, pool):
        pool.add_leaf(0x1, NOTE_A, "0x1")
        pool.add_leaf(0x2, NOTE_A, "0x1")
        assert pool.note_to_commitment[NOTE_A] == to_canonical_hex(0x2)


class TestCheckpoint:
    """Tests for watermark checkpoints."""

    def test_advances_and_persists(self, pool, store):
        pool.checkpoint(100)
        assert pool.last_indexed_block == 100
        assert store.get_watermark() == 100

    def test_never_decreases(self, pool, store):
        pool.checkpoint(100)
        pool.checkpoint(50)
        assert pool.last_indexed_block == 100
        assert store.get_watermark() == 100

    def test_failed_persist_keeps_cached_value(self, pool, monkeypatch):
        def broken_set(block):
            raise PersistenceError("disk full")

        monkeypatch.setattr(pool.store, "set_watermark", broken_set)
        with pytest.raises(PersistenceError):
            pool.checkpoint(100)
        assert pool.last_indexed_block == 0


class TestHydration:
    """Tests for loading from the store."""

    def test_empty_store(self, store):
        pool = PoolState.load(store, tree_height=TEST_TREE_HEIGHT, start_block=500)
        assert len(pool) == 0
        assert pool.last_indexed_block == 500
        assert pool.tree.root == pool.tree.zeros[TEST_TREE_HEIGHT]

    def test_reload_reproduces_root(self, pool, store):
        for commitment, note in [(0x1, NOTE_A), (0x2, NOTE_B), (0x3, None)]:
            pool.add_leaf(commitment, note, "0x5")
        pool.checkpoint(42)

        reloaded = PoolState.load(store, tree_height=TEST_TREE_HEIGHT)
        assert reloaded.tree.root == pool.tree.root
        assert reloaded.commitments == pool.commitments
        assert reloaded.note_to_commitment == pool.note_to_commitment
        assert reloaded.commitment_to_amount == pool.commitment_to_amount
        assert reloaded.last_indexed_block == 42

    def test_default_height(self, store):
        pool = PoolState.load(store)
        assert pool.tree.height == MerkleTree.DEFAULT_HEIGHT

    def test_unreadable_store_is_fatal(self, store, monkeypatch):
        def broken_list():
            raise PersistenceError("connection refused")

        monkeypatch.setattr(store, "list_leaves", broken_list)
        with pytest.raises(PersistenceError):
            PoolState.load(store)

    def test_get_state(self, pool):
        pool.add_leaf(0x1, None, "0x1")
        pool.checkpoint(9)
        state = pool.get_state()
        assert state["num_leaves"] == 1
        assert state["last_indexed_block"] == 9
        assert state["height"] == TEST_TREE_HEIGHT
