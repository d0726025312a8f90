"""Unit tests for fulfillment event filters and sources."""

import pytest
from eth_abi import encode as abi_encode

from linklot.collect.events import (
    CHAINLINK_FULFILLED_TOPIC,
    FulfillmentEventFilter,
    InMemoryEventSource,
    JsonRpcEventSource,
    address_to_topic,
    parse_fulfillment_log,
    selector_to_topic,
)
from linklot.decoders import build_default_registry
from linklot.encoding.keys import function_selector

from conftest import CALLBACK, CONSUMER, FULFILL_UINT256, ORACLE, build_fulfillment_log

REQUEST_ID = "0x" + "01" * 32
REQUEST_ID_2 = "0x" + "02" * 32
UINT_SELECTOR = function_selector(FULFILL_UINT256)
STRING_SELECTOR = function_selector("fulfillString(bytes32,string)")


def _uint_payload(request_id: str, value: int) -> bytes:
    return abi_encode(["bytes32", "uint256"], [bytes.fromhex(request_id[2:]), value])


class TestTopics:
    def test_event_topic(self) -> None:
        assert CHAINLINK_FULFILLED_TOPIC.startswith("0x")
        assert len(CHAINLINK_FULFILLED_TOPIC) == 66

    def test_padding(self) -> None:
        assert address_to_topic(CALLBACK) == "0x" + "0" * 24 + "22" * 20
        assert selector_to_topic("0xA9059CBB") == "0xa9059cbb" + "0" * 56


class TestFulfillmentEventFilter:
    def test_selectors_and_names_are_exclusive(self) -> None:
        with pytest.raises(ValueError, match="Only pass one of them"):
            FulfillmentEventFilter(callback_selectors=[UINT_SELECTOR], callback_function_names=[FULFILL_UINT256])

    def test_block_hash_and_range_are_exclusive(self) -> None:
        with pytest.raises(ValueError):
            FulfillmentEventFilter(block_hash="0x" + "bb" * 32, from_block=1)

    def test_inverted_range(self) -> None:
        with pytest.raises(ValueError):
            FulfillmentEventFilter(from_block=10, to_block=5)

    def test_resolve_selectors(self) -> None:
        assert FulfillmentEventFilter().resolve_selectors() is None
        assert FulfillmentEventFilter(callback_selectors=["0xA9059CBB"]).resolve_selectors() == ["0xa9059cbb"]
        assert FulfillmentEventFilter(callback_function_names=[FULFILL_UINT256]).resolve_selectors() == [
            UINT_SELECTOR
        ]

    def test_bare_names_need_a_registry(self) -> None:
        event_filter = FulfillmentEventFilter(callback_function_names=["fulfillUint256"])

        with pytest.raises(ValueError, match="Unknown callback function name"):
            event_filter.resolve_selectors()

        assert event_filter.resolve_selectors(build_default_registry()) == [UINT_SELECTOR]

    def test_topics(self) -> None:
        event_filter = FulfillmentEventFilter(
            request_ids=[REQUEST_ID], callback_addrs=[CALLBACK], callback_selectors=[UINT_SELECTOR]
        )

        assert event_filter.topics() == [
            CHAINLINK_FULFILLED_TOPIC,
            [REQUEST_ID],
            [address_to_topic(CALLBACK)],
            [selector_to_topic(UINT_SELECTOR)],
        ]
        assert FulfillmentEventFilter().topics() == [CHAINLINK_FULFILLED_TOPIC, None, None, None]


class TestParseFulfillmentLog:
    def test_parse(self) -> None:
        payload = _uint_payload(REQUEST_ID, 777)
        log = build_fulfillment_log(REQUEST_ID, UINT_SELECTOR, payload, block_number=12, log_index=3)

        event = parse_fulfillment_log(log)

        assert event.request_id == REQUEST_ID
        assert event.success is True
        assert event.is_forwarded is False
        assert event.callback_addr == CALLBACK
        assert event.callback_function_signature == UINT_SELECTOR
        assert event.data == UINT_SELECTOR + payload.hex()
        assert event.payload == "0x" + payload.hex()
        assert event.block_number == 12
        assert event.log_index == 3
        assert event.transaction_hash == "0x" + "cc" * 32


class TestJsonRpcEventSource:
    def test_build_log_filter(self, rpc) -> None:
        client, _ = rpc
        source = JsonRpcEventSource(client, CONSUMER)

        log_filter = source.build_log_filter(FulfillmentEventFilter())
        assert log_filter["address"] == CONSUMER
        assert log_filter["fromBlock"] == "0x0"
        assert log_filter["toBlock"] == "latest"
        assert "blockHash" not in log_filter

        log_filter = source.build_log_filter(FulfillmentEventFilter(from_block=16, to_block=32))
        assert (log_filter["fromBlock"], log_filter["toBlock"]) == ("0x10", "0x20")

        block_hash = "0x" + "bb" * 32
        log_filter = source.build_log_filter(FulfillmentEventFilter(block_hash=block_hash))
        assert log_filter["blockHash"] == block_hash
        assert "fromBlock" not in log_filter

    @pytest.mark.asyncio
    async def test_query(self, rpc) -> None:
        client, recorder = rpc
        logs = [
            build_fulfillment_log(REQUEST_ID_2, UINT_SELECTOR, _uint_payload(REQUEST_ID_2, 2), block_number=11),
            build_fulfillment_log(REQUEST_ID, UINT_SELECTOR, _uint_payload(REQUEST_ID, 1), block_number=10),
            build_fulfillment_log(REQUEST_ID, UINT_SELECTOR, _uint_payload(REQUEST_ID, 9), removed=True),
        ]
        recorder.on("eth_getLogs", lambda params: logs)
        source = JsonRpcEventSource(client, CONSUMER)

        events = await source.query(FulfillmentEventFilter(callback_addrs=[CALLBACK]))

        assert [e.request_id for e in events] == [REQUEST_ID, REQUEST_ID_2]
        (log_filter,) = recorder.calls[0]["params"]
        assert log_filter["topics"][2] == [address_to_topic(CALLBACK)]

    @pytest.mark.asyncio
    async def test_query_resolves_bare_names(self, rpc) -> None:
        client, recorder = rpc
        source = JsonRpcEventSource(client, CONSUMER, registry=build_default_registry())

        assert await source.query(FulfillmentEventFilter(callback_function_names=["fulfillUint256"])) == []

        (log_filter,) = recorder.calls[0]["params"]
        assert log_filter["topics"][3] == [selector_to_topic(UINT_SELECTOR)]


class TestInMemoryEventSource:
    @pytest.fixture
    def source(self) -> InMemoryEventSource:
        return InMemoryEventSource(
            [
                parse_fulfillment_log(
                    build_fulfillment_log(REQUEST_ID_2, STRING_SELECTOR, b"", callback_addr=ORACLE, block_number=20)
                ),
                parse_fulfillment_log(build_fulfillment_log(REQUEST_ID, UINT_SELECTOR, b"", block_number=10)),
            ]
        )

    @pytest.mark.asyncio
    async def test_unfiltered_is_ordered(self, source) -> None:
        events = await source.query(FulfillmentEventFilter())

        assert [e.block_number for e in events] == [10, 20]

    @pytest.mark.asyncio
    async def test_filters(self, source) -> None:
        assert len(await source.query(FulfillmentEventFilter(request_ids=[REQUEST_ID]))) == 1
        assert len(await source.query(FulfillmentEventFilter(callback_addrs=[ORACLE.lower()]))) == 1
        assert len(await source.query(FulfillmentEventFilter(callback_selectors=[STRING_SELECTOR]))) == 1
        assert len(await source.query(FulfillmentEventFilter(from_block=11))) == 1
        assert len(await source.query(FulfillmentEventFilter(to_block=9))) == 0
        assert len(await source.query(FulfillmentEventFilter(block_hash="0x" + "bb" * 32))) == 2
