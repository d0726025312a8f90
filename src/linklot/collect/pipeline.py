"""
Collection Pipeline.

Queries past fulfillments and feeds each payload through the decoder
registry. Every event yields one log record; decode failures are logged and
never abort the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, to_checksum_address

from linklot.collect.events import FulfillmentEventFilter, FulfillmentEventSource
from linklot.core.logging import get_logger
from linklot.core.rpc import JsonRpcClient
from linklot.core.types import FulfillmentEvent
from linklot.decoders.formatting import log_timestamp, to_display
from linklot.decoders.registry import DecodeOutcome, DecoderRegistry
from linklot.encoding.keys import function_selector

logger = get_logger("collect.pipeline")

# Operator fulfillment methods: requestId, payment, callbackAddress,
# callbackFunctionId, expiration, data
OPERATOR_FULFILLMENT_SIGNATURES = {
    function_selector(signature): signature
    for signature in (
        "fulfillOracleRequest(bytes32,uint256,address,bytes4,uint256,bytes32)",
        "fulfillOracleRequest2(bytes32,uint256,address,bytes4,uint256,bytes)",
    )
}

LINK_DECIMALS = 18


def decode_operator_fulfillment(tx_input: str) -> dict[str, Any]:
    """
    Decode the calldata of an operator fulfillment transaction.

    Raises:
        ValueError: If the calldata is not an operator fulfillment
    """
    selector = tx_input[:10].lower()
    signature = OPERATOR_FULFILLMENT_SIGNATURES.get(selector)
    if signature is None:
        raise ValueError(f"Unsupported operator function selector: {selector}")
    types = signature[signature.index("(") + 1 : -1].split(",")
    request_id, payment, callback_address, function_id, expiration, data = abi_decode(
        types, decode_hex("0x" + tx_input[10:])
    )
    link = Decimal(payment).scaleb(-LINK_DECIMALS).normalize()
    return {
        "function": f"{selector} ({signature})",
        "request_id": to_display(request_id),
        "payment": f"{payment} ({link:f} LINK)",
        "callback_address": to_checksum_address(callback_address),
        "function_id": to_display(function_id),
        "expiration": log_timestamp(expiration),
        "data": to_display(data),
    }


@dataclass
class FulfillmentTransaction:
    """The transaction that delivered a fulfillment, seen from the oracle."""

    hash: str
    block_number: int | None
    timestamp: int | None
    sender: str | None
    to: str | None
    input: str
    decoded_input: dict[str, Any] | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "block": self.block_number,
            "timestamp": log_timestamp(self.timestamp) if self.timestamp is not None else None,
            "from": self.sender,
            "to": self.to,
            "data": self.input,
            "data_decoded": self.decoded_input,
        }


@dataclass
class CollectedFulfillment:
    """A fulfillment event and what could be decoded from it."""

    event: FulfillmentEvent
    outcome: DecodeOutcome
    transaction: FulfillmentTransaction | None = None

    @property
    def decoded(self) -> bool:
        return self.outcome.decoded

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "request_id": self.event.request_id,
            "success": self.event.success,
            "is_forwarded": self.event.is_forwarded,
            "callback_addr": self.event.callback_addr,
            "callback_function_signature": self.event.callback_function_signature,
            "data": self.event.data,
            "data_decoded": None,
        }
        if self.outcome.decoded:
            record["data_decoded"] = {
                "callback_function_name": self.outcome.callback_function_name,
                "result": self.outcome.value,
            }
        if self.transaction is not None:
            record["tx"] = self.transaction.to_record()
        return record


class CollectionPipeline:
    """
    Collect and decode fulfilled requests.

    Args:
        source: Where fulfillment events come from
        registry: Decoders tried against each payload
        client: When given, the fulfillment transaction and its block are
            fetched for every event

    Usage:
        registry = build_default_registry()
        source = JsonRpcEventSource.from_config(config, registry=registry)
        pipeline = CollectionPipeline(source, registry)
        results = await pipeline.collect(FulfillmentEventFilter(from_block=123))
    """

    def __init__(
        self,
        source: FulfillmentEventSource,
        registry: DecoderRegistry,
        client: JsonRpcClient | None = None,
    ) -> None:
        self._source = source
        self._registry = registry
        self._client = client

    async def collect(self, event_filter: FulfillmentEventFilter | None = None) -> list[CollectedFulfillment]:
        event_filter = event_filter or FulfillmentEventFilter()
        events = await self._source.query(event_filter)

        # Selectors behind name filters are extra candidates for every event
        name_selectors: list[str] = []
        if event_filter.callback_function_names:
            name_selectors = event_filter.resolve_selectors(self._registry) or []

        results = []
        for event in events:
            result = await self._collect_one(event, name_selectors)
            logger.info(f"ChainlinkFulfilled event: {result.to_record()}")
            results.append(result)

        logger.info(f"Number of ChainlinkFulfilled events found: {len(events)}")
        return results

    def decode_event(self, event: FulfillmentEvent, extra_selectors: list[str] | None = None) -> DecodeOutcome:
        """Decode an event payload trying its own selector first."""
        candidates = [event.callback_function_signature, *(extra_selectors or [])]
        outcome = self._registry.decode_candidates(candidates, event.payload)
        if not outcome.decoded and outcome.failures:
            logger.error(
                f"Error decoding event data of request {event.request_id}. "
                f"Tried: {[f.name for f in outcome.failures]}",
                extra={"request_id": event.request_id},
            )
        return outcome

    async def _collect_one(self, event: FulfillmentEvent, name_selectors: list[str]) -> CollectedFulfillment:
        outcome = self.decode_event(event, name_selectors)
        transaction = None
        if self._client is not None and event.transaction_hash:
            transaction = await self._fetch_transaction(event)
        return CollectedFulfillment(event=event, outcome=outcome, transaction=transaction)

    async def _fetch_transaction(self, event: FulfillmentEvent) -> FulfillmentTransaction | None:
        assert self._client is not None
        tx = await self._client.get_transaction(event.transaction_hash)  # type: ignore[arg-type]
        if not tx:
            logger.warning(f"Transaction {event.transaction_hash} not found")
            return None

        timestamp = None
        if event.block_hash:
            block = await self._client.get_block(event.block_hash)
            if block and block.get("timestamp") is not None:
                timestamp = int(block["timestamp"], 16)

        tx_input = tx.get("input") or tx.get("data") or "0x"
        decoded_input = None
        try:
            decoded_input = decode_operator_fulfillment(tx_input)
        except (ValueError, DecodingError) as e:
            logger.warning(f"Could not decode fulfillment transaction {tx.get('hash')}: {e}")

        block_number = tx.get("blockNumber")
        return FulfillmentTransaction(
            hash=tx.get("hash", event.transaction_hash),
            block_number=int(block_number, 16) if block_number else None,
            timestamp=timestamp,
            sender=tx.get("from"),
            to=tx.get("to"),
            input=tx_input,
            decoded_input=decoded_input,
        )
