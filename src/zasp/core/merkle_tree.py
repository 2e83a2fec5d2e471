"""Incremental Merkle tree over deposit commitments."""

from functools import lru_cache
from typing import List, Sequence, Tuple

from zasp.utils.hash import hash2
from zasp.utils.encoding import to_canonical_hex
from zasp.exceptions import (
    TreeHeightExceededError,
    InvalidLeafIndexError,
)


@lru_cache(maxsize=None)
def zero_hashes(height: int) -> Tuple[int, ...]:
    """
    Hashes of empty subtrees for levels 0..height.

    zeros[0] = 0, zeros[i + 1] = H(zeros[i], zeros[i])
    """
    zeros = [0]
    for _ in range(height):
        zeros.append(hash2(zeros[-1], zeros[-1]))
    return tuple(zeros)


def compute_root(leaf: int, siblings: Sequence[int], direction_bits: Sequence[int]) -> int:
    """
    Fold a leaf and its inclusion path up to a root.

    Args:
        leaf: Leaf value (raw field element, leaves are not pre-hashed)
        siblings: Sibling hashes from level 0 upwards
        direction_bits: 0 when the running node is a left child, 1 when right

    Returns:
        int: Root implied by the path
    """
    if len(siblings) != len(direction_bits):
        raise ValueError("Siblings and direction bits must have the same length")

    current = leaf
    for sibling, bit in zip(siblings, direction_bits):
        if bit:
            current = hash2(sibling, current)
        else:
            current = hash2(current, sibling)
    return current


class MerkleTree:
    """
    Fixed-height, append-only Merkle tree with implicit empty subtrees.

    Level 0 holds the leaves in append order, level k holds internal nodes.
    Each level is only materialized up to the highest index computed so
    far; any position past the end of a level equals zeros[level].

    Insertion and path extraction both cost exactly `height` hashes or
    lookups, independent of the number of leaves.
    """

    DEFAULT_HEIGHT = 25

    def __init__(self, tree_height: int = DEFAULT_HEIGHT):
        """
        Initialize empty Merkle tree.

        Args:
            tree_height: Height of the tree (default 25)

        Raises:
            ValueError: If height is invalid
        """
        if tree_height < 1 or tree_height > 64:
            raise ValueError("Tree height must be between 1 and 64")

        self.height = tree_height
        self.max_leaves = 2**tree_height
        self.zeros = zero_hashes(tree_height)
        self.levels: List[List[int]] = [[] for _ in range(tree_height + 1)]

    @staticmethod
    def _set_node(level: List[int], index: int, value: int) -> None:
        if index < len(level):
            level[index] = value
        else:
            level.append(value)

    def _node(self, level: int, index: int) -> int:
        nodes = self.levels[level]
        if index < len(nodes):
            return nodes[index]
        return self.zeros[level]

    def append(self, index: int, leaf: int) -> int:
        """
        Write a leaf at `index` and rehash its path to the root.

        `index` may overwrite an existing leaf or extend level 0 by exactly
        one position; gaps are not supported.

        Args:
            index: Leaf position
            leaf: Commitment as a field element

        Returns:
            int: New root

        Raises:
            TreeHeightExceededError: If index does not fit in the tree
            InvalidLeafIndexError: If index would leave a gap
        """
        if index >= self.max_leaves:
            raise TreeHeightExceededError(f"Tree is full (max {self.max_leaves} leaves)")
        if index < 0 or index > len(self.levels[0]):
            raise InvalidLeafIndexError(
                f"Invalid leaf index: {index} (tree has {len(self.levels[0])} leaves)"
            )

        self._set_node(self.levels[0], index, leaf)

        position = index
        current = leaf
        for level in range(self.height):
            sibling = self._node(level, position ^ 1)
            if position % 2 == 0:
                current = hash2(current, sibling)
            else:
                current = hash2(sibling, current)

            position >>= 1
            self._set_node(self.levels[level + 1], position, current)

        return current

    def path_of(self, index: int) -> Tuple[List[int], List[int], int]:
        """
        Return the inclusion path for a leaf position.

        Unpopulated positions are valid and yield a path against the
        empty subtree.

        Args:
            index: Leaf position

        Returns:
            Tuple of (siblings, direction_bits, root)

        Raises:
            InvalidLeafIndexError: If index is outside the tree
        """
        if index < 0 or index >= self.max_leaves:
            raise InvalidLeafIndexError(f"Invalid leaf index: {index}")

        siblings = []
        direction_bits = []
        position = index

        for level in range(self.height):
            siblings.append(self._node(level, position ^ 1))
            direction_bits.append(position % 2)
            position >>= 1

        return siblings, direction_bits, self.root

    def verify_path(self, leaf: int, siblings: Sequence[int], direction_bits: Sequence[int]) -> bool:
        """Check that a path leads from `leaf` to the current root."""
        if len(siblings) != self.height:
            return False
        return compute_root(leaf, siblings, direction_bits) == self.root

    @property
    def root(self) -> int:
        """Get the current Merkle root."""
        top = self.levels[self.height]
        return top[0] if top else self.zeros[self.height]

    def get_state(self) -> dict:
        """
        Get the current state of the tree for serialization.

        Returns:
            dict: Tree height, leaf count and root
        """
        return {
            "height": self.height,
            "max_leaves": self.max_leaves,
            "num_leaves": len(self),
            "root": to_canonical_hex(self.root),
        }

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return len(self.levels[0])

    def __repr__(self) -> str:
        return (
            f"MerkleTree(height={self.height}, "
            f"leaves={len(self)}/{self.max_leaves}, "
            f"root={to_canonical_hex(self.root)[:18]}...)"
        )
