"""Pydantic data models for the ASP API."""

from pydantic import BaseModel, Field
from typing import List, Optional

from zasp.config import TokenInfo


class MerklePathRequest(BaseModel):
    """Request model for inclusion path lookups."""
    commitment: str = Field(..., description="Commitment (hex)")
    note_hash: Optional[str] = Field(None, description="Note hash (hex), preferred when known")


class MerklePathResponse(BaseModel):
    """Response model for inclusion path lookups."""
    root: str = Field(..., description="Merkle root (hex), 0x0 when not found")
    path: List[str] = Field(..., description="Sibling hashes from leaf to root (hex)")
    indices: List[int] = Field(..., description="0 = left child, 1 = right child, per level")
    index: int = Field(..., description="Leaf index in tree")
    amount: str = Field(..., description="Deposited amount (hex)")
    commitment: str = Field(..., description="Resolved commitment (hex)")


class TokensResponse(BaseModel):
    """Configured pool tokens."""
    tokens: List[TokenInfo]


class PoolStateResponse(BaseModel):
    """Response model for pool state."""
    root: str = Field(..., description="Current Merkle root (hex)")
    tree_height: int = Field(..., description="Merkle tree height")
    num_leaves: int = Field(..., description="Number of indexed commitments")
    last_indexed_block: int = Field(..., description="Last fully indexed block")
