"""Pool state: commitment indexes kept consistent with the Merkle tree.

The in-memory structures are a rebuildable cache of the leaf store:

    - commitments:          canonical commitment -> leaf index
    - note_to_commitment:   note hash -> canonical commitment
    - commitment_to_amount: canonical commitment -> amount hex
    - tree:                 incremental Merkle tree over the commitments
    - last_indexed_block:   cached sync watermark

One ReadWriteLock guards all of it. Methods that mutate expect the caller
to hold the write lock; the synchronizer takes it for a whole batch.
"""

import logging
from typing import Dict, Optional

from zasp.core.locks import ReadWriteLock
from zasp.core.merkle_tree import MerkleTree
from zasp.storage.database import LeafStore, StoredLeaf
from zasp.utils.encoding import from_hex, to_canonical_hex
from zasp.exceptions import PersistenceError, TreeHeightExceededError

logger = logging.getLogger(__name__)


class PoolState:
    """Shared, lock-guarded view of the commitment set."""

    def __init__(self, store: LeafStore, tree_height: int = MerkleTree.DEFAULT_HEIGHT,
                 last_indexed_block: int = 0):
        self.store = store
        self.tree = MerkleTree(tree_height=tree_height)
        self.commitments: Dict[str, int] = {}
        self.note_to_commitment: Dict[str, str] = {}
        self.commitment_to_amount: Dict[str, str] = {}
        self.last_indexed_block = last_indexed_block
        self.lock = ReadWriteLock()

    @classmethod
    def load(cls, store: LeafStore, tree_height: int = MerkleTree.DEFAULT_HEIGHT,
             start_block: int = 0) -> "PoolState":
        """
        Hydrate pool state from the leaf store.

        Leaves are replayed in index order, so the rebuilt tree has the same
        root it had before the restart.

        Args:
            store: Durable leaf store
            tree_height: Merkle tree height
            start_block: Watermark used when the store is empty

        Returns:
            PoolState: Hydrated state

        Raises:
            PersistenceError: If the store cannot be read; startup must not
                continue with unknown state
        """
        store.create_tables()
        last_block = store.get_watermark(start_block)
        pool = cls(store, tree_height=tree_height, last_indexed_block=last_block)

        for leaf in store.list_leaves():
            pool._record(leaf.commitment, leaf.index, leaf.note_hash, leaf.amount)
            pool.tree.append(leaf.index, from_hex(leaf.commitment))

        logger.info(
            f"Loaded {len(pool.tree)} leaves, root {to_canonical_hex(pool.tree.root)}, "
            f"last indexed block {pool.last_indexed_block}"
        )
        return pool

    def _record(self, commitment_hex: str, index: int, note_hash: Optional[str], amount: str) -> None:
        self.commitments[commitment_hex] = index
        self.commitment_to_amount[commitment_hex] = amount
        if note_hash:
            previous = self.note_to_commitment.get(note_hash)
            if previous is not None and previous != commitment_hex:
                logger.warning(
                    f"Note hash {note_hash} remapped from {previous} to {commitment_hex}"
                )
            self.note_to_commitment[note_hash] = commitment_hex

    def has_commitment(self, commitment_hex: str) -> bool:
        return commitment_hex in self.commitments

    def add_leaf(self, commitment: int, note_hash_hex: Optional[str], amount_hex: str) -> bool:
        """
        Add a commitment to the store, the indexes and the tree.

        Idempotent: a commitment that is already indexed is a no-op. The
        stored row is always re-read after the insert, and its index and
        amount win over the locally computed ones, so memory converges on
        the store even if the row was written earlier by someone else.
        When this call wrote the row and the re-read fails, the local index
        and amount are used, so a committed row always reaches memory and
        the next leaf never reuses its index.

        Args:
            commitment: Commitment as a field element
            note_hash_hex: Note hash key, if the deposit carried one
            amount_hex: Amount as hex

        Returns:
            bool: True if a leaf was added, False for a duplicate

        Raises:
            PersistenceError: If the store write fails, or the re-read fails
                for a row this call did not write
            TreeHeightExceededError: If the tree is full; nothing is stored
        """
        commitment_hex = to_canonical_hex(commitment)
        if commitment_hex in self.commitments:
            return False

        index = len(self.tree)
        if index >= self.tree.max_leaves:
            raise TreeHeightExceededError(f"Tree is full (max {self.tree.max_leaves} leaves)")

        inserted = self.store.insert_leaf_if_absent(commitment_hex, index, note_hash_hex, amount_hex)

        try:
            stored = self.store.find_leaf(commitment_hex)
        except PersistenceError as e:
            if not inserted:
                raise
            logger.warning(f"Re-read of leaf {commitment_hex} failed ({e}), using local index {index}")
            stored = None

        if stored is None:
            if not inserted:
                raise PersistenceError(f"Leaf {commitment_hex} missing after insert")
            # Our own row is committed; memory must follow it
            stored = StoredLeaf(commitment_hex, index, note_hash_hex, amount_hex)

        if stored.index != index:
            logger.warning(
                f"Leaf {commitment_hex} already stored at index {stored.index}, "
                f"repairing memory (local index was {index})"
            )

        self.tree.append(stored.index, commitment)
        self._record(commitment_hex, stored.index, stored.note_hash or note_hash_hex, stored.amount)
        return True

    def checkpoint(self, block: int) -> None:
        """
        Durably advance the sync watermark.

        The store is written before the cached value changes. Blocks at or
        below the current watermark are ignored.

        Raises:
            PersistenceError: If the watermark cannot be stored
        """
        if block <= self.last_indexed_block:
            return
        self.store.set_watermark(block)
        self.last_indexed_block = block

    def get_state(self) -> dict:
        """Summary of the pool for status endpoints."""
        with self.lock.read():
            state = self.tree.get_state()
            state["last_indexed_block"] = self.last_indexed_block
            return state

    def __len__(self) -> int:
        return len(self.tree)
