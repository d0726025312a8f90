import json
import logging
from typing import Any, Callable

import httpx
import pytest
from eth_abi import encode as abi_encode

from linklot.collect.events import CHAINLINK_FULFILLED_TOPIC, address_to_topic, selector_to_topic
from linklot.core.logging import LOGGER_NAME
from linklot.core.rpc import JsonRpcClient
from linklot.core.types import Entry, RequestType
from linklot.encoding.keys import convert_job_id_to_spec_id, derive_entry_key, function_selector
from linklot.encoding.params import encode_request_params

# All-digit addresses are valid checksum addresses
ORACLE = "0x1111111111111111111111111111111111111111"
CALLBACK = "0x2222222222222222222222222222222222222222"
CONSUMER = "0x3333333333333333333333333333333333333333"
SENDER = "0x4444444444444444444444444444444444444444"
ORACLE_2 = "0x5555555555555555555555555555555555555555"

JOB_ID = "2fb6e8a3-8d3e-4bd6-8d43-0f7d3d6c6e9a"
JOB_ID_2 = "7d8f3c21-1a2b-4c3d-9e8f-0123456789ab"

FULFILL_UINT256 = "fulfillUint256(bytes32,uint256)"


@pytest.fixture(autouse=True)
def reset_linklot_logger():
    """Undo configure_logging() so caplog sees package records in every test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def build_entry(
    job_id: str = JOB_ID,
    oracle: str = ORACLE,
    params: list[dict[str, Any]] | None = None,
    payment: int = 10**17,
    callback_addr: str = CALLBACK,
    callback_function_name: str = FULFILL_UINT256,
    start_at: int = 0,
    interval: int = 3600,
    inactive: bool = False,
) -> Entry:
    params = params if params is not None else [{"name": "get", "type": "string", "value": "price"}]
    spec_id = convert_job_id_to_spec_id(job_id)
    buffer = "0x" + encode_request_params(params).hex()
    return Entry(
        key=derive_entry_key(spec_id, oracle, buffer),
        spec_id=spec_id,
        oracle=oracle,
        payment=payment,
        callback_addr=callback_addr,
        callback_function_signature=function_selector(callback_function_name),
        request_type=RequestType.ORACLE,
        buffer=buffer,
        start_at=start_at,
        interval=interval,
        inactive=inactive,
    )


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    return build_entry


def build_raw_entry(job_id: int = 1, job_case: int = 0, **request_overrides: Any) -> dict[str, Any]:
    request_data = {
        "externalJobId": JOB_ID,
        "oracleAddr": ORACLE,
        "payment": "100000000000000000",
        "callbackAddr": CALLBACK,
        "callbackFunctionName": FULFILL_UINT256,
        "requestType": 0,
        "requestParams": [
            {"name": "get", "type": "string", "value": "price"},
            {"name": "path", "type": "string", "value": "USD"},
        ],
    }
    request_data.update(request_overrides)
    return {
        "description": {
            "adapter": None,
            "chainId": 5,
            "jobId": job_id,
            "jobCase": job_case,
            "jobName": "price",
            "nodeId": "linkpool_eth_goerli_delta",
            "notes": None,
        },
        "requestData": request_data,
        "schedule": {"startAt": "0", "interval": "3600"},
        "inactive": False,
    }


@pytest.fixture
def raw_entry() -> dict[str, Any]:
    return build_raw_entry()


@pytest.fixture
def entries_file(tmp_path):
    def _write(items: Any) -> str:
        path = tmp_path / "entries.json"
        path.write_text(json.dumps(items), encoding="utf-8")
        return str(path)

    return _write


class RpcRecorder:
    """Routes JSON-RPC payloads to per-method handlers and records them."""

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[[list[Any]], Any]] = {}
        self.calls: list[dict[str, Any]] = []

    def on(self, method: str, handler: Callable[[list[Any]], Any]) -> None:
        self.handlers[method] = handler

    def methods(self) -> list[str]:
        return [c["method"] for c in self.calls]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append(payload)
        handler = self.handlers.get(payload["method"])
        if handler is None:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": None})
        result = handler(payload["params"])
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": result["error"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})


@pytest.fixture
def rpc():
    """A JSON-RPC client wired to an in-process mock node."""
    recorder = RpcRecorder()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    client = JsonRpcClient("http://node.test", http_client=http_client, retry_reads=False)
    return client, recorder


def build_fulfillment_log(
    request_id: str,
    selector: str,
    payload: bytes,
    callback_addr: str = CALLBACK,
    success: bool = True,
    block_number: int = 10,
    log_index: int = 0,
    **fields: Any,
) -> dict[str, Any]:
    """A raw ChainlinkFulfilled log as returned by eth_getLogs."""
    data = abi_encode(["bool", "bool", "bytes"], [success, False, bytes.fromhex(selector[2:]) + payload])
    log = {
        "address": CONSUMER,
        "topics": [
            CHAINLINK_FULFILLED_TOPIC,
            request_id,
            address_to_topic(callback_addr),
            selector_to_topic(selector),
        ],
        "data": "0x" + data.hex(),
        "blockNumber": hex(block_number),
        "blockHash": "0x" + "bb" * 32,
        "transactionHash": "0x" + "cc" * 32,
        "logIndex": hex(log_index),
        "removed": False,
    }
    log.update(fields)
    return log
