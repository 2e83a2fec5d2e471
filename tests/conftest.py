"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path
from typing import List, Optional

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zasp.chain.rpc import ChainProvider, EmittedEvent, EventsPage
from zasp.core.pool import PoolState
from zasp.exceptions import TransportError
from zasp.storage import LeafStore

POOL_ADDRESS = "0x5a11"
TEST_TREE_HEIGHT = 8


def make_deposit_event(note_hash: int, amount: int, block_number: int = 1,
                       tx_hash: str = "0xabc") -> EmittedEvent:
    """Build a Deposit event with the note hash split into low/high words."""
    low = note_hash & (2**128 - 1)
    high = note_hash >> 128
    return EmittedEvent(
        data=[low, high, amount],
        from_address=POOL_ADDRESS,
        block_number=block_number,
        transaction_hash=tx_hash,
    )


class FakeChainProvider(ChainProvider):
    """In-memory chain: a head block and a list of emitted events."""

    def __init__(self, head: int = 0):
        self.head = head
        self.events: List[EmittedEvent] = []
        self.fail_block_number = False
        self.fail_get_events = False
        self.calls: List[dict] = []

    def emit(self, event: EmittedEvent) -> None:
        self.events.append(event)
        self.head = max(self.head, event.block_number)

    def block_number(self) -> int:
        if self.fail_block_number:
            raise TransportError("node unreachable")
        return self.head

    def get_events(self, from_block, to_block, address, keys, chunk_size,
                   continuation_token: Optional[str] = None) -> EventsPage:
        if self.fail_get_events:
            raise TransportError("getEvents timed out")
        self.calls.append({
            "from_block": from_block,
            "to_block": to_block,
            "address": address,
            "keys": keys,
            "chunk_size": chunk_size,
            "continuation_token": continuation_token,
        })
        matching = [e for e in self.events if from_block <= e.block_number <= to_block]
        offset = int(continuation_token) if continuation_token else 0
        page = matching[offset:offset + chunk_size]
        next_offset = offset + chunk_size
        token = str(next_offset) if next_offset < len(matching) else None
        return EventsPage(events=page, continuation_token=token)


@pytest.fixture
def db_url(tmp_path):
    """Fixture providing a temporary SQLite database URL."""
    return f"sqlite:///{tmp_path / 'asp.db'}"


@pytest.fixture
def store(db_url):
    """Fixture providing an initialized leaf store."""
    leaf_store = LeafStore(db_url)
    leaf_store.create_tables()
    yield leaf_store
    leaf_store.engine.dispose()


@pytest.fixture
def pool(store):
    """Fixture providing an empty pool with a small tree."""
    return PoolState.load(store, tree_height=TEST_TREE_HEIGHT)


@pytest.fixture
def chain():
    """Fixture providing a fake chain provider."""
    return FakeChainProvider()
