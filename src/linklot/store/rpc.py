"""
JSON-RPC Entry Store.

Talks to a deployed consumer contract: reads through `eth_call`, writes
through `eth_sendTransaction` from a node-managed account, then polls the
receipt until the transaction is mined. Custom-error revert data is decoded
back into the typed store exceptions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector, to_checksum_address

from linklot.core.config import Config
from linklot.core.exceptions import (
    ConfigurationError,
    EntryNotInsertedError,
    EntryRejectedError,
    JsonRpcError,
    LotNotInsertedError,
    StoreError,
    TransactionError,
)
from linklot.core.logging import get_logger
from linklot.core.rpc import JsonRpcClient
from linklot.core.types import Entry, RequestType
from linklot.store.base import EntryStore

logger = get_logger("store.rpc")

# (specId, oracle, payment, callbackAddr, startAt, interval,
#  callbackFunctionSignature, inactive, requestType, buffer)
ENTRY_TUPLE = "(bytes32,address,uint96,address,uint96,uint96,bytes4,bool,uint8,bytes)"

ENTRY_FIELD_ERRORS = {
    "GenericConsumer__EntryFieldSpecIdIsZero": "specId",
    "GenericConsumer__EntryFieldOracleIsNotContract": "oracle",
    "GenericConsumer__EntryFieldOracleIsGenericConsumer": "oracle",
    "GenericConsumer__EntryFieldPaymentIsGtLinkTotalSupply": "payment",
    "GenericConsumer__EntryFieldCallbackAddrIsNotContract": "callbackAddr",
    "GenericConsumer__EntryFieldCallbackFunctionSignatureIsZero": "callbackFunctionSignature",
    "GenericConsumer__EntryFieldIntervalIsZero": "interval",
}

# Entry field errors are raised without arguments
_ENTRY_FIELD_SELECTORS: dict[bytes, str] = {
    function_signature_to_4byte_selector(f"{name}()"): name for name in ENTRY_FIELD_ERRORS
}

# Custom errors with known arguments, by selector
_CUSTOM_ERRORS: dict[bytes, tuple[str, list[str]]] = {
    function_signature_to_4byte_selector(f"{name}({','.join(types)})"): (name, types)
    for name, types in [
        ("GenericConsumer__LotIsNotInserted", ["uint256"]),
        ("GenericConsumer__EntryIsNotInserted", ["uint256", "bytes32"]),
        ("GenericConsumer__ArrayIsEmpty", ["string"]),
        ("GenericConsumer__ArrayLengthsAreNotEqual", ["string", "uint256", "string", "uint256"]),
    ]
}


def _selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def _entry_to_abi(entry: Entry) -> tuple[Any, ...]:
    return (
        decode_hex(entry.spec_id),
        to_checksum_address(entry.oracle),
        entry.payment,
        to_checksum_address(entry.callback_addr),
        entry.start_at,
        entry.interval,
        decode_hex(entry.callback_function_signature),
        entry.inactive,
        int(entry.request_type),
        decode_hex(entry.buffer),
    )


def _entry_from_abi(key: str, values: Sequence[Any]) -> Entry:
    (
        spec_id,
        oracle,
        payment,
        callback_addr,
        start_at,
        interval,
        callback_function_signature,
        inactive,
        request_type,
        buffer,
    ) = values
    return Entry(
        key=key,
        spec_id=encode_hex(spec_id),
        oracle=to_checksum_address(oracle),
        payment=payment,
        callback_addr=to_checksum_address(callback_addr),
        callback_function_signature=encode_hex(callback_function_signature),
        request_type=RequestType(request_type),
        buffer=encode_hex(buffer),
        start_at=start_at,
        interval=interval,
        inactive=inactive,
    )


def map_revert_error(error: JsonRpcError) -> StoreError | None:
    """
    Translate a reverted call into a typed store exception.

    Known custom errors are decoded from the revert data; entry field errors
    are recognized by name in the data-less node message as well.
    """
    if error.data and len(error.data) >= 10:
        raw = decode_hex(error.data)
        known = _CUSTOM_ERRORS.get(raw[:4])
        if known is not None:
            name, types = known
            try:
                args = abi_decode(types, raw[4:])
            except DecodingError:
                args = None
            if args is not None:
                if name == "GenericConsumer__LotIsNotInserted":
                    return LotNotInsertedError(args[0])
                if name == "GenericConsumer__EntryIsNotInserted":
                    return EntryNotInsertedError(args[0], encode_hex(args[1]))
                if name == "GenericConsumer__ArrayIsEmpty":
                    return EntryRejectedError(f'Array "{args[0]}" is empty', field=args[0], value=[])
                return EntryRejectedError(
                    f'Array lengths are not equal: "{args[0]}" {args[1]}, "{args[2]}" {args[3]}',
                    field=args[2],
                    value=args[3],
                )
        field_error = _ENTRY_FIELD_SELECTORS.get(raw[:4])
        if field_error is not None:
            return EntryRejectedError(
                f"Rejected by the consumer: {field_error}", field=ENTRY_FIELD_ERRORS[field_error]
            )

    for name, field_name in ENTRY_FIELD_ERRORS.items():
        if name in error.message:
            return EntryRejectedError(f"Rejected by the consumer: {name}", field=field_name)
    return None


class JsonRpcEntryStore(EntryStore):
    """
    Entry store backed by the on-chain consumer contract.

    Usage:
        config = Config.from_env()
        store = JsonRpcEntryStore.from_config(config)
        keys = await store.get_entry_map_keys(1)
        await store.close()
    """

    def __init__(
        self,
        client: JsonRpcClient,
        consumer_address: str,
        sender_address: str | None = None,
        gas_limit: int | None = None,
        poll_interval: float = 2.0,
        poll_timeout: float = 120.0,
    ) -> None:
        self._client = client
        self.consumer_address = to_checksum_address(consumer_address)
        self.sender_address = to_checksum_address(sender_address) if sender_address else None
        self._gas_limit = gas_limit
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout

    @classmethod
    def from_config(cls, config: Config, client: JsonRpcClient | None = None) -> JsonRpcEntryStore:
        return cls(
            client=client or JsonRpcClient(config.rpc_urls, timeout=config.request_timeout),
            consumer_address=config.consumer_address,
            sender_address=config.sender_address,
            gas_limit=config.gas_limit,
            poll_interval=config.transaction_poll_interval,
            poll_timeout=config.transaction_poll_timeout,
        )

    async def close(self) -> None:
        await self._client.close()

    # ─── Call helpers ────────────────────────────────────────────────

    @staticmethod
    def _calldata(signature: str, types: list[str], args: list[Any]) -> str:
        return encode_hex(_selector(signature) + abi_encode(types, args))

    async def _read(self, signature: str, types: list[str], args: list[Any], output: list[str]) -> tuple[Any, ...]:
        data = self._calldata(signature, types, args)
        try:
            result = await self._client.call(self.consumer_address, data, sender=self.sender_address)
        except JsonRpcError as e:
            mapped = map_revert_error(e)
            if mapped is not None:
                raise mapped from e
            raise
        return abi_decode(output, decode_hex(result))

    async def _write(self, signature: str, types: list[str], args: list[Any]) -> dict[str, Any]:
        if not self.sender_address:
            raise ConfigurationError("sender_address is required to send transactions")
        tx: dict[str, Any] = {
            "from": self.sender_address,
            "to": self.consumer_address,
            "data": self._calldata(signature, types, args),
        }
        if self._gas_limit:
            tx["gas"] = hex(self._gas_limit)
        try:
            tx_hash = await self._client.send_transaction(tx)
        except JsonRpcError as e:
            mapped = map_revert_error(e)
            if mapped is not None:
                raise mapped from e
            raise TransactionError(f"{signature.split('(')[0]} failed to submit: {e.message}", None, "submit") from e
        logger.debug(f"{signature.split('(')[0]} submitted: {tx_hash}", extra={"tx_hash": tx_hash})
        return await self._wait_for_receipt(tx_hash)

    async def _wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._poll_timeout
        while True:
            receipt = await self._client.get_transaction_receipt(tx_hash)
            if receipt is not None:
                if int(receipt.get("status", "0x1"), 16) != 1:
                    raise TransactionError("Transaction reverted", tx_hash, "receipt", details={"receipt": receipt})
                return receipt
            if loop.time() >= deadline:
                raise TransactionError(
                    f"Receipt not available after {self._poll_timeout}s", tx_hash, "timeout"
                )
            await asyncio.sleep(self._poll_interval)

    # ─── Reads ───────────────────────────────────────────────────────

    async def get_lot_is_inserted(self, lot: int) -> bool:
        (result,) = await self._read("getLotIsInserted(uint256)", ["uint256"], [lot], ["bool"])
        return result

    async def get_lots(self) -> list[int]:
        (result,) = await self._read("getLots()", [], [], ["uint256[]"])
        return list(result)

    async def get_entry_map_keys(self, lot: int) -> list[str]:
        (result,) = await self._read("getEntryMapKeys(uint256)", ["uint256"], [lot], ["bytes32[]"])
        return [encode_hex(key) for key in result]

    async def get_entry_is_inserted(self, lot: int, key: str) -> bool:
        (result,) = await self._read(
            "getEntryIsInserted(uint256,bytes32)", ["uint256", "bytes32"], [lot, decode_hex(key)], ["bool"]
        )
        return result

    async def get_entry(self, lot: int, key: str) -> Entry:
        (result,) = await self._read(
            "getEntry(uint256,bytes32)", ["uint256", "bytes32"], [lot, decode_hex(key)], [ENTRY_TUPLE]
        )
        return _entry_from_abi(key, result)

    async def get_is_upkeep_allowed(self, lot: int) -> bool:
        (result,) = await self._read("getIsUpkeepAllowed(uint256)", ["uint256"], [lot], ["bool"])
        return result

    async def get_last_request_timestamp(self, lot: int, key: str) -> int:
        (result,) = await self._read(
            "getLastRequestTimestamp(uint256,bytes32)",
            ["uint256", "bytes32"],
            [lot, decode_hex(key)],
            ["uint256"],
        )
        return result

    async def get_latest_round_id(self) -> int:
        (result,) = await self._read("getLatestRoundId()", [], [], ["uint256"])
        return result

    # ─── Writes ──────────────────────────────────────────────────────

    async def set_entry(self, lot: int, key: str, entry: Entry) -> None:
        await self._write(
            f"setEntry(uint256,bytes32,{ENTRY_TUPLE})",
            ["uint256", "bytes32", ENTRY_TUPLE],
            [lot, decode_hex(key), _entry_to_abi(entry)],
        )

    async def set_entries(self, lot: int, keys: Sequence[str], entries: Sequence[Entry]) -> None:
        await self._write(
            f"setEntries(uint256,bytes32[],{ENTRY_TUPLE}[])",
            ["uint256", "bytes32[]", f"{ENTRY_TUPLE}[]"],
            [lot, [decode_hex(k) for k in keys], [_entry_to_abi(e) for e in entries]],
        )

    async def remove_entry(self, lot: int, key: str) -> None:
        await self._write("removeEntry(uint256,bytes32)", ["uint256", "bytes32"], [lot, decode_hex(key)])

    async def remove_entries(self, lot: int, keys: Sequence[str]) -> None:
        await self._write(
            "removeEntries(uint256,bytes32[])", ["uint256", "bytes32[]"], [lot, [decode_hex(k) for k in keys]]
        )

    async def remove_lot(self, lot: int) -> None:
        await self._write("removeLot(uint256)", ["uint256"], [lot])

    async def set_is_upkeep_allowed(self, lot: int, is_upkeep_allowed: bool) -> None:
        await self._write("setIsUpkeepAllowed(uint256,bool)", ["uint256", "bool"], [lot, is_upkeep_allowed])

    async def set_last_request_timestamp(self, lot: int, key: str, timestamp: int) -> None:
        await self._write(
            "setLastRequestTimestamp(uint256,bytes32,uint256)",
            ["uint256", "bytes32", "uint256"],
            [lot, decode_hex(key), timestamp],
        )

    async def set_last_request_timestamps(
        self, lot: int, keys: Sequence[str], timestamps: Sequence[int]
    ) -> None:
        await self._write(
            "setLastRequestTimestamps(uint256,bytes32[],uint256[])",
            ["uint256", "bytes32[]", "uint256[]"],
            [lot, [decode_hex(k) for k in keys], list(timestamps)],
        )

    async def set_latest_round_id(self, round_id: int) -> None:
        await self._write("setLatestRoundId(uint256)", ["uint256"], [round_id])
