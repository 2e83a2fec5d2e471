"""Field hash primitives shared with the proving circuits."""

from zasp.crypto.poseidon import (
    PoseidonParameters,
    get_parameters,
    permute,
    poseidon,
)

__all__ = [
    "PoseidonParameters",
    "get_parameters",
    "permute",
    "poseidon",
]
