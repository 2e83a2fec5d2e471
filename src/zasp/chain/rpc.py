"""
Chain RPC access.

`ChainProvider` is the interface the synchronizer depends on;
`StarknetRpcProvider` implements it over Starknet JSON-RPC
(`starknet_blockNumber`, `starknet_getEvents`).
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from zasp.exceptions import TransportError
from zasp.utils.encoding import parse_hex

logger = logging.getLogger(__name__)


@dataclass
class EmittedEvent:
    """An event as returned by the node, data words already parsed."""

    data: List[int]
    keys: List[int] = field(default_factory=list)
    from_address: Optional[str] = None
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None

    @classmethod
    def from_json(cls, raw: dict) -> "EmittedEvent":
        return cls(
            data=[parse_hex(word) for word in raw.get("data", [])],
            keys=[parse_hex(key) for key in raw.get("keys", [])],
            from_address=raw.get("from_address"),
            block_number=raw.get("block_number"),
            transaction_hash=raw.get("transaction_hash"),
        )


@dataclass
class EventsPage:
    """One chunk of a getEvents query."""

    events: List[EmittedEvent]
    continuation_token: Optional[str] = None


class ChainProvider:
    """Interface to the chain node used by the synchronizer."""

    def block_number(self) -> int:
        """Return the current chain head."""
        raise NotImplementedError

    def get_events(
        self,
        from_block: int,
        to_block: int,
        address: str,
        keys: List[List[str]],
        chunk_size: int,
        continuation_token: Optional[str] = None,
    ) -> EventsPage:
        """Return one page of events emitted by `address` in [from_block, to_block]."""
        raise NotImplementedError


class StarknetRpcProvider(ChainProvider):
    """
    Starknet JSON-RPC client.

    Connection errors, HTTP errors and JSON-RPC error objects all surface as
    TransportError so the caller can abort the cycle and retry later.
    """

    def __init__(self, rpc_url: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        """
        Initialize provider.

        Args:
            rpc_url: Node endpoint
            timeout: Per-request timeout in seconds
            session: Optional requests session for connection pooling
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session
        self._ids = itertools.count(1)

    def _get_session(self) -> requests.Session:
        """Get or create HTTP session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _call(self, method: str, params: Any) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = self._get_session().post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise TransportError(f"{method} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"{method} returned invalid JSON: {e}") from e

        if "error" in body:
            error = body["error"]
            raise TransportError(f"{method} error {error.get('code')}: {error.get('message')}")
        if "result" not in body:
            raise TransportError(f"{method} returned no result")
        return body["result"]

    def block_number(self) -> int:
        return int(self._call("starknet_blockNumber", []))

    def get_events(
        self,
        from_block: int,
        to_block: int,
        address: str,
        keys: List[List[str]],
        chunk_size: int,
        continuation_token: Optional[str] = None,
    ) -> EventsPage:
        event_filter = {
            "from_block": {"block_number": from_block},
            "to_block": {"block_number": to_block},
            "address": address,
            "keys": keys,
            "chunk_size": chunk_size,
        }
        if continuation_token:
            event_filter["continuation_token"] = continuation_token

        result = self._call("starknet_getEvents", {"filter": event_filter})
        try:
            events = [EmittedEvent.from_json(raw) for raw in result.get("events", [])]
        except (ValueError, AttributeError, TypeError) as e:
            raise TransportError(f"starknet_getEvents returned malformed events: {e}") from e

        return EventsPage(events=events, continuation_token=result.get("continuation_token"))
