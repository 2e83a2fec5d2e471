"""Chain access: RPC provider and deposit event decoding."""

from zasp.chain.rpc import (
    ChainProvider,
    StarknetRpcProvider,
    EmittedEvent,
    EventsPage,
)
from zasp.chain.events import (
    DEPOSIT_EVENT_NAME,
    DepositEvent,
    decode_deposit,
    get_selector_from_name,
)

__all__ = [
    "ChainProvider",
    "StarknetRpcProvider",
    "EmittedEvent",
    "EventsPage",
    "DEPOSIT_EVENT_NAME",
    "DepositEvent",
    "decode_deposit",
    "get_selector_from_name",
]
