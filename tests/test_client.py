"""
Unit tests for the LinkLot client.

The client is wired to a mock node; every JSON-RPC call it makes is recorded.
"""

import logging

import pytest
from eth_abi import encode as abi_encode

from linklot import LinkLot
from linklot.collect.events import FulfillmentEventFilter
from linklot.core.config import Config
from linklot.core.exceptions import ValidationError
from linklot.core.logging import LOGGER_NAME
from linklot.core.types import MutationKind
from linklot.encoding.keys import function_selector

from conftest import CONSUMER, FULFILL_UINT256, SENDER, build_fulfillment_log, build_raw_entry


def _config(**overrides) -> Config:
    values = {
        "rpc_url": "http://node.test",
        "consumer_address": CONSUMER,
        "sender_address": SENDER,
        "chain_id": 5,
    }
    values.update(overrides)
    return Config(**values)


def _bool_result(value: bool) -> str:
    return "0x" + abi_encode(["bool"], [value]).hex()


def _eur_entry() -> dict:
    return build_raw_entry(
        job_id=2,
        requestParams=[
            {"name": "get", "type": "string", "value": "price"},
            {"name": "path", "type": "string", "value": "EUR"},
        ],
    )


@pytest.fixture
def node(rpc):
    client, recorder = rpc
    # Empty consumer: no lot is inserted
    recorder.on("eth_call", lambda params: _bool_result(False))
    recorder.on("eth_sendTransaction", lambda params: "0x" + "aa" * 32)
    recorder.on("eth_getTransactionReceipt", lambda params: {"status": "0x1"})
    return client, recorder


class TestClientInitialization:
    def test_init(self, node) -> None:
        client, _ = node

        linklot = LinkLot(_config(), client=client)

        assert linklot.config.chain_id == 5
        assert linklot.store.consumer_address == CONSUMER
        assert linklot.store.sender_address == SENDER
        assert linklot.synchronizer.batch_size == linklot.config.batch_size
        assert function_selector(FULFILL_UINT256) in linklot.registry

    def test_configures_logging(self, node) -> None:
        client, _ = node

        LinkLot(_config(), client=client, log_level="DEBUG")

        logger = logging.getLogger(LOGGER_NAME)
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    @pytest.mark.asyncio
    async def test_chain_id_from_node(self, node) -> None:
        client, recorder = node
        recorder.on("eth_chainId", lambda params: "0x5")

        assert await LinkLot(_config(), client=client).get_chain_id() == 5
        assert await LinkLot(_config(chain_id=None), client=client).get_chain_id() == 5
        assert recorder.methods() == ["eth_chainId"]


class TestImportEntries:
    @pytest.mark.asyncio
    async def test_dry_run_sends_no_transaction(self, node, entries_file) -> None:
        client, recorder = node
        path = entries_file([build_raw_entry(), _eur_entry()])

        result = await LinkLot(_config(), client=client).import_entries_file(1, path, dry_run=True)

        assert result.dry_run
        assert len(result.diff.to_add) == 2
        assert result.added.kind == MutationKind.ADD
        assert len(result.added.keys_applied) == 2
        assert set(recorder.methods()) == {"eth_call"}

    @pytest.mark.asyncio
    async def test_import_submits_batches(self, node, entries_file) -> None:
        client, recorder = node
        path = entries_file([build_raw_entry(), _eur_entry()])

        result = await LinkLot(_config(batch_size=1), client=client).import_entries_file(1, path)

        assert result.added.calls == 2
        assert recorder.methods().count("eth_sendTransaction") == 2
        assert recorder.methods().count("eth_getTransactionReceipt") == 2

    @pytest.mark.asyncio
    async def test_import_logs_file_indices_of_collapsed_entries(self, node, entries_file, caplog) -> None:
        client, _ = node
        # Same request data under two job ids: both items share one key
        path = entries_file([build_raw_entry(1, 0), build_raw_entry(2, 0)])
        linklot = LinkLot(_config(), client=client)
        logging.getLogger(LOGGER_NAME).propagate = True
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)

        result = await linklot.import_entries_file(1, path, dry_run=True)

        assert len(result.added.keys_applied) == 1
        assert "Added in batch (0, 0) in lot 1. File indices: [1]" in caplog.text

    @pytest.mark.asyncio
    async def test_load_entries_checks_chain_id(self, node, entries_file) -> None:
        client, _ = node
        path = entries_file([build_raw_entry()])

        specs = await LinkLot(_config(), client=client).load_entries(path)

        assert len(specs) == 1

        with pytest.raises(ValidationError):
            await LinkLot(_config(chain_id=1), client=client).load_entries(path)


class TestCollect:
    @pytest.mark.asyncio
    async def test_collect(self, node) -> None:
        client, recorder = node
        request_id = "0x" + "01" * 32
        payload = abi_encode(["bytes32", "uint256"], [bytes.fromhex(request_id[2:]), 777])
        recorder.on(
            "eth_getLogs",
            lambda params: [build_fulfillment_log(request_id, function_selector(FULFILL_UINT256), payload)],
        )

        async with LinkLot(_config(), client=client) as linklot:
            results = await linklot.collect(FulfillmentEventFilter(from_block=1))

        assert len(results) == 1
        assert results[0].outcome.value == 777
        assert results[0].transaction is None
        (log_filter,) = recorder.calls[0]["params"]
        assert log_filter["address"] == CONSUMER
        assert log_filter["fromBlock"] == "0x1"
