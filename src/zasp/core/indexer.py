"""Chain event synchronizer: keeps the pool in step with on-chain deposits.

One cycle:
    1. Read the watermark (read lock)
    2. Ask the node for the head block; stop if nothing new
    3. Fetch Deposit events in (watermark, head] for the pool contract
    4. Decode each event into a commitment
    5. Skip commitments already in the pool
    6. add_leaf each new commitment, logging and skipping failures
    7. Checkpoint the watermark at head, once per cycle

Steps 4-7 run under the write lock, so readers never see leaves whose
watermark has not been durably advanced. Because add_leaf is idempotent,
retrying a cycle after any failure is safe: delivery is at-least-once.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from zasp.chain.events import decode_deposit, get_selector_from_name, DEPOSIT_EVENT_NAME
from zasp.chain.rpc import ChainProvider, EmittedEvent
from zasp.core.pool import PoolState
from zasp.utils.encoding import to_canonical_hex
from zasp.exceptions import PersistenceError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of one sync cycle."""

    from_block: int
    head: int
    events: int = 0
    added: int = 0
    duplicates: int = 0
    malformed: int = 0
    failed: int = 0

    @property
    def advanced(self) -> bool:
        return self.head > self.from_block


class ChainSynchronizer:
    """
    Background poller that feeds deposit commitments into the pool.

    The pool is the only shared state; the synchronizer is its single
    writer and never runs two cycles at once.
    """

    POLL_INTERVAL = 2.0
    PAGE_SIZE = 1000

    def __init__(
        self,
        pool: PoolState,
        provider: ChainProvider,
        contract_address: str,
        event_selector: Optional[int] = None,
        page_size: int = PAGE_SIZE,
        poll_interval: float = POLL_INTERVAL,
        paginate: bool = True,
    ):
        """
        Initialize synchronizer.

        Args:
            pool: Shared pool state
            provider: Chain RPC provider
            contract_address: Pool contract emitting Deposit events
            event_selector: Event key to filter on (default: selector of "Deposit")
            page_size: Events requested per getEvents call
            poll_interval: Seconds between cycles
            paginate: Follow continuation tokens until the range is exhausted
        """
        if event_selector is None:
            event_selector = get_selector_from_name(DEPOSIT_EVENT_NAME)

        self.pool = pool
        self.provider = provider
        self.contract_address = contract_address
        self.event_selector = event_selector
        self.page_size = page_size
        self.poll_interval = poll_interval
        self.paginate = paginate

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.running:
            logger.warning("Synchronizer already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="zasp-indexer", daemon=True)
        self._thread.start()
        logger.info(
            f"Synchronizer started for {self.contract_address} "
            f"(polling every {self.poll_interval}s)"
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling and wait for the current cycle to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Synchronizer stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.run_cycle()
            self._stop_event.wait(self.poll_interval)

    def run_cycle(self) -> Optional[SyncReport]:
        """
        Run one cycle, logging instead of raising.

        The polling loop must survive every failure; the next tick retries
        from the same watermark.
        """
        logger.debug("Checking for new deposit events")
        try:
            return self.sync_once()
        except TransportError as e:
            logger.warning(f"Indexing error (transport): {e}")
        except PersistenceError as e:
            logger.error(f"Indexing error (persistence): {e}")
        except Exception as e:
            logger.error(f"Indexing error: {e}", exc_info=True)
        return None

    # ------------------------------------------------------------------
    # Sync cycle
    # ------------------------------------------------------------------

    def _fetch_events(self, from_block: int, to_block: int) -> List[EmittedEvent]:
        keys = [[hex(self.event_selector)]]
        events: List[EmittedEvent] = []
        token = None

        while True:
            page = self.provider.get_events(
                from_block, to_block, self.contract_address, keys, self.page_size, token
            )
            events.extend(page.events)
            token = page.continuation_token
            if not token:
                break
            if not self.paginate:
                logger.warning(
                    f"Event page cap ({self.page_size}) reached for blocks "
                    f"{from_block}-{to_block}; remaining events are not fetched"
                )
                break

        return events

    def sync_once(self) -> SyncReport:
        """
        Run one synchronization cycle.

        Returns:
            SyncReport: Counters for the cycle

        Raises:
            TransportError: If the node cannot be reached; nothing is applied
            PersistenceError: If the watermark cannot be checkpointed
        """
        with self.pool.lock.read():
            last_block = self.pool.last_indexed_block

        head = self.provider.block_number()
        report = SyncReport(from_block=last_block, head=last_block)
        if head <= last_block:
            return report

        events = self._fetch_events(last_block + 1, head)
        report.head = head
        report.events = len(events)

        with self.pool.lock.write():
            for event in events:
                deposit = decode_deposit(event)
                if deposit is None:
                    logger.warning(
                        f"Skipping event with {len(event.data)} data words "
                        f"(tx {event.transaction_hash})"
                    )
                    report.malformed += 1
                    continue

                commitment = deposit.commitment
                commitment_hex = to_canonical_hex(commitment)
                if self.pool.has_commitment(commitment_hex):
                    report.duplicates += 1
                    continue

                logger.info(
                    f"Found new Deposit! NoteHash: {deposit.note_hash_hex}, "
                    f"Amount: {deposit.amount}, Final Commitment: {commitment_hex}"
                )
                try:
                    if self.pool.add_leaf(commitment, deposit.note_hash_hex, deposit.amount_hex):
                        report.added += 1
                    else:
                        report.duplicates += 1
                except Exception as e:
                    logger.error(f"Error adding leaf {commitment_hex}: {e}. Continuing...")
                    report.failed += 1

            self.pool.checkpoint(head)

        if report.added:
            logger.info(
                f"Indexed {report.added} new leaves up to block {head} "
                f"({len(self.pool)} total)"
            )
        return report
