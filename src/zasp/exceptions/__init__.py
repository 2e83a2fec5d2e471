"""Custom exceptions for the ASP server."""


class ZASPException(Exception):
    """Base exception for all ASP server errors."""
    pass


# Encoding Errors
class EncodingError(ZASPException):
    """Base exception for field element encoding errors."""
    pass


class ParseError(EncodingError, ValueError):
    """Raised when a hex string cannot be parsed into a field element."""
    pass


# Merkle Tree Errors
class MerkleTreeError(ZASPException):
    """Base exception for Merkle tree errors."""
    pass


class TreeHeightExceededError(MerkleTreeError):
    """Raised when a leaf index does not fit in the tree."""
    pass


class InvalidLeafIndexError(MerkleTreeError):
    """Raised when leaf index is invalid."""
    pass


# Storage Errors
class StorageError(ZASPException):
    """Base exception for storage errors."""
    pass


class PersistenceError(StorageError):
    """Raised when the leaf store is unreachable or rejects a write."""
    pass


# Chain Errors
class ChainError(ZASPException):
    """Base exception for chain access errors."""
    pass


class TransportError(ChainError):
    """Raised when the RPC endpoint is unreachable or returns an error."""
    pass

