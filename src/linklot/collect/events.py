"""
Fulfillment Event Sources.

Query past `ChainlinkFulfilled` events emitted by the consumer, filtered by
request id, callback address and callback selector, over a block range or a
single block hash.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from eth_abi import decode as abi_decode
from eth_utils import decode_hex, encode_hex, event_signature_to_log_topic, to_checksum_address

from linklot.core.config import Config
from linklot.core.logging import get_logger
from linklot.core.rpc import JsonRpcClient
from linklot.core.types import FulfillmentEvent
from linklot.decoders.registry import DecoderRegistry
from linklot.encoding.keys import function_selector

logger = get_logger("collect.events")

CHAINLINK_FULFILLED_SIGNATURE = "ChainlinkFulfilled(bytes32,bool,bool,address,bytes4,bytes)"
CHAINLINK_FULFILLED_TOPIC = encode_hex(event_signature_to_log_topic(CHAINLINK_FULFILLED_SIGNATURE))


def address_to_topic(address: str) -> str:
    """Left-pad an address to a 32-byte topic."""
    return "0x" + address.lower().removeprefix("0x").rjust(64, "0")


def selector_to_topic(selector: str) -> str:
    """Right-pad a bytes4 selector to a 32-byte topic."""
    return "0x" + selector.lower().removeprefix("0x").ljust(64, "0")


def _hex_to_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


@dataclass
class FulfillmentEventFilter:
    """
    Filter for fulfillment events.

    Attributes:
        request_ids: Match any of these request ids
        callback_addrs: Match any of these callback addresses
        callback_selectors: Match any of these callback selectors (bytes4)
        callback_function_names: Match any of these callback functions, as
            full signatures or bare names. Can't be combined with
            `callback_selectors`.
        from_block: First block of the range (defaults to genesis)
        to_block: Last block of the range (defaults to latest)
        block_hash: Query a single block instead of a range
    """

    request_ids: list[str] | None = None
    callback_addrs: list[str] | None = None
    callback_selectors: list[str] | None = None
    callback_function_names: list[str] | None = None
    from_block: int | None = None
    to_block: int | None = None
    block_hash: str | None = None

    def __post_init__(self) -> None:
        if self.callback_selectors and self.callback_function_names:
            raise ValueError(
                "Unsupported combination of filters: 'callback_selectors', 'callback_function_names'. "
                "Only pass one of them"
            )
        if self.block_hash and (self.from_block is not None or self.to_block is not None):
            raise ValueError("Unsupported combination of filters: 'block_hash' with a block range")
        if self.from_block is not None and self.to_block is not None and self.from_block > self.to_block:
            raise ValueError(f"from_block {self.from_block} is greater than to_block {self.to_block}")

    def resolve_selectors(self, registry: DecoderRegistry | None = None) -> list[str] | None:
        """
        Callback selectors to filter by.

        Function names given as full signatures are hashed; bare names need
        a registry to find the signatures registered under that name.
        """
        if self.callback_selectors:
            return [s.lower() for s in self.callback_selectors]
        if not self.callback_function_names:
            return None
        selectors: list[str] = []
        for name in self.callback_function_names:
            if registry is not None:
                resolved = registry.selectors_for_name(name)
            elif "(" in name:
                resolved = [function_selector(name)]
            else:
                resolved = []
            if not resolved:
                raise ValueError(f"Unknown callback function name: {name}")
            selectors.extend(s for s in resolved if s not in selectors)
        return selectors

    def topics(self, registry: DecoderRegistry | None = None) -> list[Any]:
        """Topic list of an eth_getLogs filter, `None` meaning any value."""
        selectors = self.resolve_selectors(registry)
        return [
            CHAINLINK_FULFILLED_TOPIC,
            [r.lower() for r in self.request_ids] if self.request_ids else None,
            [address_to_topic(a) for a in self.callback_addrs] if self.callback_addrs else None,
            [selector_to_topic(s) for s in selectors] if selectors else None,
        ]


def parse_fulfillment_log(log: dict[str, Any]) -> FulfillmentEvent:
    """Parse a raw `ChainlinkFulfilled` log entry."""
    topics = log["topics"]
    success, is_forwarded, data = abi_decode(["bool", "bool", "bytes"], decode_hex(log["data"]))
    return FulfillmentEvent(
        request_id=topics[1].lower(),
        success=success,
        is_forwarded=is_forwarded,
        callback_addr=to_checksum_address("0x" + topics[2][-40:]),
        callback_function_signature=topics[3][:10].lower(),
        data=encode_hex(data),
        block_number=_hex_to_int(log.get("blockNumber")),
        block_hash=log.get("blockHash"),
        transaction_hash=log.get("transactionHash"),
        log_index=_hex_to_int(log.get("logIndex")),
    )


class FulfillmentEventSource(ABC):
    """Abstract source of past fulfillment events."""

    @abstractmethod
    async def query(self, event_filter: FulfillmentEventFilter) -> list[FulfillmentEvent]:
        """Return the matching events ordered by block and log index."""
        ...

    async def close(self) -> None:
        """Release resources held by the source."""
        return None


class JsonRpcEventSource(FulfillmentEventSource):
    """
    Event source backed by `eth_getLogs`.

    Args:
        client: JSON-RPC client
        consumer_address: Address of the consumer emitting the events
        registry: Used to resolve bare callback function names
    """

    def __init__(
        self,
        client: JsonRpcClient,
        consumer_address: str,
        registry: DecoderRegistry | None = None,
    ) -> None:
        self._client = client
        self.consumer_address = to_checksum_address(consumer_address)
        self._registry = registry

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: JsonRpcClient | None = None,
        registry: DecoderRegistry | None = None,
    ) -> JsonRpcEventSource:
        client = client or JsonRpcClient(config.rpc_urls, timeout=config.request_timeout)
        return cls(client, config.consumer_address, registry)

    def build_log_filter(self, event_filter: FulfillmentEventFilter) -> dict[str, Any]:
        log_filter: dict[str, Any] = {
            "address": self.consumer_address,
            "topics": event_filter.topics(self._registry),
        }
        if event_filter.block_hash:
            log_filter["blockHash"] = event_filter.block_hash
        else:
            log_filter["fromBlock"] = hex(event_filter.from_block or 0)
            log_filter["toBlock"] = hex(event_filter.to_block) if event_filter.to_block is not None else "latest"
        return log_filter

    async def query(self, event_filter: FulfillmentEventFilter) -> list[FulfillmentEvent]:
        log_filter = self.build_log_filter(event_filter)
        logger.debug(f"Querying ChainlinkFulfilled logs: {log_filter}")
        logs = await self._client.get_logs(log_filter)
        events = [parse_fulfillment_log(log) for log in logs if not log.get("removed")]
        events.sort(key=lambda e: (e.block_number or 0, e.log_index or 0))
        return events

    async def close(self) -> None:
        await self._client.close()


class InMemoryEventSource(FulfillmentEventSource):
    """Event source over a fixed list of events, applying the same filters."""

    def __init__(self, events: Iterable[FulfillmentEvent] = (), registry: DecoderRegistry | None = None) -> None:
        self._events: list[FulfillmentEvent] = list(events)
        self._registry = registry

    def add(self, event: FulfillmentEvent) -> None:
        self._events.append(event)

    async def query(self, event_filter: FulfillmentEventFilter) -> list[FulfillmentEvent]:
        request_ids = {r.lower() for r in event_filter.request_ids or []}
        callback_addrs = {a.lower() for a in event_filter.callback_addrs or []}
        selectors = set(event_filter.resolve_selectors(self._registry) or [])

        def matches(event: FulfillmentEvent) -> bool:
            if request_ids and event.request_id.lower() not in request_ids:
                return False
            if callback_addrs and event.callback_addr.lower() not in callback_addrs:
                return False
            if selectors and event.callback_function_signature.lower() not in selectors:
                return False
            if event_filter.block_hash:
                return event.block_hash == event_filter.block_hash
            number = event.block_number or 0
            if event_filter.from_block is not None and number < event_filter.from_block:
                return False
            if event_filter.to_block is not None and number > event_filter.to_block:
                return False
            return True

        events = [e for e in self._events if matches(e)]
        events.sort(key=lambda e: (e.block_number or 0, e.log_index or 0))
        return events
