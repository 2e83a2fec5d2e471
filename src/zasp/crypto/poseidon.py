"""
Poseidon hash over the BN254 scalar field, circom flavour.

Matches the ``Poseidon`` template of circomlib (and therefore poseidon-lite,
circomlibjs and light-poseidon ``new_circom``), which is what the proving
circuits and the on-chain verifier use to build commitments and tree nodes.

Parameters:
    - S-box: x^5
    - Full rounds: 8 (4 before and 4 after the partial rounds)
    - Partial rounds: depends on the state width t = inputs + 1
    - State: [0, in_1, ..., in_n], output is state[0] after the permutation

Round constants and the MDS matrix are not tabulated here. They are derived
with the Grain LFSR in self-shrinking mode, seeded with the instance
parameters, which is how the reference parameter script (and circomlib's
constant tables) produce them:

    1. Seed 80 bits: field(2) | sbox(4) | n(12) | t(12) | R_F(10) | R_P(10) | 1*30
    2. Discard 160 LFSR outputs
    3. Each field element takes n bits, MSB first, rejecting values >= p
    4. (R_F + R_P) * t round constants, then 2t values for a Cauchy matrix
       M[i][j] = 1 / (x_i + y_j)

Example:
    >>> hex(poseidon([1, 2]))
    '0x115cc0f5e7d690413df64c6b9662e9cf2a3617f2743245519e19607a4417189a'
"""

from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Sequence

from zasp.utils.encoding import FIELD_MODULUS

FIELD_BITS = 254
ALPHA = 5
FULL_ROUNDS = 8

# Indexed by t - 2
PARTIAL_ROUNDS = [56, 57, 56, 60, 60, 63, 64, 63]

MAX_INPUTS = len(PARTIAL_ROUNDS)

# Grain seed flags: prime field, x^alpha S-box
_FIELD_FLAG = 1
_SBOX_FLAG = 0


@dataclass(frozen=True)
class PoseidonParameters:
    """Constants of one Poseidon instance."""

    t: int
    full_rounds: int
    partial_rounds: int
    round_constants: List[int]
    mds: List[List[int]]


def _to_bits(value: int, width: int) -> List[int]:
    return [int(b) for b in format(value, "0%db" % width)]


def _grain_stream(t: int, full_rounds: int, partial_rounds: int) -> Iterator[int]:
    """Self-shrinking Grain LFSR keyed by the instance parameters."""
    seed = (
        _to_bits(_FIELD_FLAG, 2)
        + _to_bits(_SBOX_FLAG, 4)
        + _to_bits(FIELD_BITS, 12)
        + _to_bits(t, 12)
        + _to_bits(full_rounds, 10)
        + _to_bits(partial_rounds, 10)
        + [1] * 30
    )
    state = deque(seed, maxlen=80)

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    while True:
        # Bits come in pairs: the first decides whether the second is kept
        control = step()
        while control == 0:
            step()
            control = step()
        yield step()


def _take_bits(stream: Iterator[int], count: int) -> int:
    value = 0
    for _ in range(count):
        value = (value << 1) | next(stream)
    return value


def _field_element(stream: Iterator[int]) -> int:
    while True:
        value = _take_bits(stream, FIELD_BITS)
        if value < FIELD_MODULUS:
            return value


def _cauchy_matrix(stream: Iterator[int], t: int) -> List[List[int]]:
    while True:
        samples = [_take_bits(stream, FIELD_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        while len(set(samples)) != len(samples):
            samples = [_take_bits(stream, FIELD_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        xs, ys = samples[:t], samples[t:]
        if any((x + y) % FIELD_MODULUS == 0 for x in xs for y in ys):
            continue
        return [[pow(x + y, -1, FIELD_MODULUS) for y in ys] for x in xs]


@lru_cache(maxsize=None)
def get_parameters(t: int) -> PoseidonParameters:
    """
    Derive (and cache) the constants for state width t.

    Args:
        t: State width, number of inputs plus one

    Returns:
        PoseidonParameters: Round constants and MDS matrix

    Raises:
        ValueError: If t is outside the supported range
    """
    if t < 2 or t - 2 >= len(PARTIAL_ROUNDS):
        raise ValueError(f"Unsupported Poseidon width: {t}")

    partial_rounds = PARTIAL_ROUNDS[t - 2]
    stream = _grain_stream(t, FULL_ROUNDS, partial_rounds)

    round_constants = [
        _field_element(stream) for _ in range((FULL_ROUNDS + partial_rounds) * t)
    ]
    mds = _cauchy_matrix(stream, t)

    return PoseidonParameters(
        t=t,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=round_constants,
        mds=mds,
    )


def permute(state: Sequence[int]) -> List[int]:
    """Apply the Poseidon permutation to a full state vector."""
    params = get_parameters(len(state))
    t = params.t
    p = FIELD_MODULUS
    half_full = params.full_rounds // 2
    total_rounds = params.full_rounds + params.partial_rounds
    constants = params.round_constants
    mds = params.mds

    state = [s % p for s in state]
    for r in range(total_rounds):
        state = [(s + constants[r * t + i]) % p for i, s in enumerate(state)]
        if r < half_full or r >= half_full + params.partial_rounds:
            state = [pow(s, ALPHA, p) for s in state]
        else:
            state[0] = pow(state[0], ALPHA, p)
        state = [sum(row[j] * state[j] for j in range(t)) % p for row in mds]
    return state


def poseidon(inputs: Sequence[int]) -> int:
    """
    Hash 1..8 field elements.

    Args:
        inputs: Field elements (reduced mod p before hashing)

    Returns:
        int: Field element
    """
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon takes 1 to {MAX_INPUTS} inputs, got {len(inputs)}")
    return permute([0] + [int(x) for x in inputs])[0]
