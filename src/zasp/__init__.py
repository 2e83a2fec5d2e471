"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "Zylith Team"
__description__ = "Zylith ASP: commitment tree indexer for the shielded pool"

from .core.merkle_tree import MerkleTree
from .core.pool import PoolState
from .core.query import InclusionPath, resolve_path
from .core.indexer import ChainSynchronizer, SyncReport

__all__ = [
    "MerkleTree",
    "PoolState",
    "InclusionPath",
    "resolve_path",
    "ChainSynchronizer",
    "SyncReport",
]
