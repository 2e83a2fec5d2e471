"""Storage layer for persistent data."""

from zasp.storage.database import (
    LeafStore,
    Leaf,
    SyncState,
    StoredLeaf,
    Base,
)

__all__ = [
    "LeafStore",
    "Leaf",
    "SyncState",
    "StoredLeaf",
    "Base",
]
