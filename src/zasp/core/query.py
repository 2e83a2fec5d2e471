"""Read-only inclusion path lookups over the pool state."""

from dataclasses import dataclass, field
from typing import List, Optional

from zasp.core.pool import PoolState
from zasp.utils.encoding import ZERO_HEX, from_hex, normalize_hex, to_canonical_hex
from zasp.exceptions import ParseError


@dataclass
class InclusionPath:
    """Path, root and amount snapshot for one commitment."""

    root: str
    path: List[str] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)
    index: int = 0
    amount: str = ZERO_HEX
    commitment: str = ""

    @property
    def found(self) -> bool:
        return bool(self.path)

    @classmethod
    def not_found(cls, commitment: str) -> "InclusionPath":
        """Sentinel for unknown commitments; clients expect it with a 200."""
        return cls(root=ZERO_HEX, commitment=commitment)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "root": self.root,
            "path": list(self.path),
            "indices": list(self.indices),
            "index": self.index,
            "amount": self.amount,
            "commitment": self.commitment,
        }


def _commitment_key(value: str) -> Optional[str]:
    try:
        return to_canonical_hex(from_hex(value))
    except ParseError:
        return None


def _note_key(value: str) -> Optional[str]:
    try:
        return normalize_hex(value)
    except ParseError:
        return None


def resolve_path(pool: PoolState, commitment: str, note_hash: Optional[str] = None) -> InclusionPath:
    """
    Resolve a commitment or note hash to its inclusion path.

    A note hash known to the pool takes precedence; otherwise the supplied
    commitment is used as is. Unknown or malformed values produce the
    not-found sentinel rather than an error.

    Args:
        pool: Shared pool state
        commitment: Commitment hex supplied by the client
        note_hash: Optional note hash hex

    Returns:
        InclusionPath: Snapshot taken under the read lock
    """
    with pool.lock.read():
        target = commitment
        if note_hash is not None:
            note_key = _note_key(note_hash)
            mapped = pool.note_to_commitment.get(note_key) if note_key else None
            if mapped is not None:
                target = mapped

        key = _commitment_key(target)
        index = pool.commitments.get(key) if key else None
        if index is None:
            return InclusionPath.not_found(target)

        siblings, direction_bits, root = pool.tree.path_of(index)
        return InclusionPath(
            root=to_canonical_hex(root),
            path=[to_canonical_hex(s) for s in siblings],
            indices=direction_bits,
            index=index,
            amount=pool.commitment_to_amount.get(key, ZERO_HEX),
            commitment=key,
        )
