"""Cryptographic hash utilities."""

from zasp.crypto.poseidon import poseidon


def hash2(left: int, right: int) -> int:
    """
    Two-to-one compression used for tree nodes and commitments.

    Must stay bit-identical to the circuit side, which uses circom Poseidon
    with two inputs.

    Args:
        left: Left field element
        right: Right field element

    Returns:
        int: Poseidon(left, right)
    """
    return poseidon([left, right])


def derive_commitment(note_identifier: int, amount: int) -> int:
    """
    Compute deposit commitment cm = H(note_hash, amount).

    Zero-amount deposits come from private operations that already carry
    their final commitment, so the identifier is returned unchanged.

    Args:
        note_identifier: Note hash as a field element
        amount: Deposited amount as a field element

    Returns:
        int: Commitment
    """
    if amount == 0:
        return note_identifier
    return hash2(note_identifier, amount)


def compute_note_hash(secret: int, nullifier: int) -> int:
    """Compute note hash = H(secret, nullifier)."""
    return hash2(secret, nullifier)


def compute_nullifier_hash(secret: int, commitment: int) -> int:
    """Compute nullifier hash nf = H(secret, commitment)."""
    return hash2(secret, commitment)
