"""Deposit event decoding.

Deposit event payload (data words, each a field element):

    data[0]  note hash, low 128 bits
    data[1]  note hash, high 128 bits
    data[2]  amount

The note hash is a 256-bit value split across two words upstream; it is
reassembled as (high << 128) | low and reduced into the BN254 field before
hashing. A high word wider than 128 bits is malformed: it is logged and
kept unmasked, so the commitment is still taken over the full value mod p.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from eth_utils import keccak

from zasp.chain.rpc import EmittedEvent
from zasp.utils.encoding import FIELD_MODULUS, HEX_DIGITS, int_to_hex, to_canonical_hex
from zasp.utils.hash import derive_commitment

logger = logging.getLogger(__name__)

DEPOSIT_EVENT_NAME = "Deposit"

DEPOSIT_DATA_WORDS = 3

_SELECTOR_MASK = 2**250 - 1


def get_selector_from_name(name: str) -> int:
    """Starknet selector: keccak256 of the name, masked to 250 bits."""
    return int.from_bytes(keccak(text=name), "big") & _SELECTOR_MASK


@dataclass(frozen=True)
class DepositEvent:
    """Decoded deposit."""

    note_hash: int
    amount: int
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None

    @property
    def note_identifier(self) -> int:
        return self.note_hash % FIELD_MODULUS

    @property
    def commitment(self) -> int:
        # Zero test on the raw amount; the hash reduces it
        return derive_commitment(self.note_identifier, self.amount)

    @property
    def commitment_hex(self) -> str:
        return to_canonical_hex(self.commitment)

    @property
    def note_hash_hex(self) -> str:
        return "0x" + format(self.note_hash, "0%dx" % HEX_DIGITS)

    @property
    def amount_hex(self) -> str:
        return int_to_hex(self.amount)


def decode_deposit(event: EmittedEvent) -> Optional[DepositEvent]:
    """
    Decode a deposit from an emitted event.

    Returns:
        DepositEvent, or None if the event carries fewer than three words
    """
    if len(event.data) < DEPOSIT_DATA_WORDS:
        return None

    low, high, amount = event.data[:DEPOSIT_DATA_WORDS]
    if high >> 128:
        logger.warning(
            f"Deposit high word exceeds 128 bits (tx {event.transaction_hash}); "
            f"reducing the full note value mod p"
        )
    note_hash = (high << 128) | low
    return DepositEvent(
        note_hash=note_hash,
        amount=amount,
        block_number=event.block_number,
        transaction_hash=event.transaction_hash,
    )
