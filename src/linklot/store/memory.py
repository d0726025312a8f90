"""
In-Memory Entry Store.

Emulates the consumer contract state in Python dicts: lots, entry maps,
upkeep flags, last request timestamps and the latest round id, with the
same field checks and lot lifecycle. Used for dry runs and tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from linklot.core.exceptions import EntryNotInsertedError, EntryRejectedError, LotNotInsertedError
from linklot.core.logging import get_logger
from linklot.core.types import LINK_TOTAL_SUPPLY, ZERO_ADDRESS, ZERO_SELECTOR, Entry
from linklot.store.base import EntryStore

logger = get_logger("store.memory")

_ZERO_BYTES32 = "0x" + "0" * 64

# Placeholder consumer address for stores not tied to a deployment
DEFAULT_CONSUMER_ADDRESS = "0x" + "c0" * 20


class InMemoryEntryStore(EntryStore):
    """
    In-memory entry store.

    Args:
        consumer_address: Address of the emulated consumer (an entry oracle
            can't be the consumer itself)
        contract_addresses: Addresses treated as deployed contracts. When
            None, every non-zero address counts as a contract.
    """

    def __init__(
        self,
        consumer_address: str = DEFAULT_CONSUMER_ADDRESS,
        contract_addresses: Iterable[str] | None = None,
    ) -> None:
        self.consumer_address = consumer_address
        self._contracts: set[str] | None = (
            {a.lower() for a in contract_addresses} if contract_addresses is not None else None
        )
        self._lots: dict[int, dict[str, Entry]] = {}
        self._is_upkeep_allowed: dict[int, bool] = {}
        self._last_request_timestamps: dict[int, dict[str, int]] = {}
        self._latest_round_id = 0

    def set_code(self, *addresses: str) -> None:
        """Mark addresses as deployed contracts."""
        if self._contracts is None:
            self._contracts = set()
        self._contracts.update(a.lower() for a in addresses)

    @classmethod
    def from_snapshot(
        cls,
        lot: int,
        entries: dict[str, Entry],
        consumer_address: str = DEFAULT_CONSUMER_ADDRESS,
    ) -> InMemoryEntryStore:
        """Seed a store with an already-read lot (dry runs replay against it)."""
        store = cls(consumer_address=consumer_address)
        if entries:
            store._lots[lot] = dict(entries)
            store._last_request_timestamps[lot] = {}
        return store

    # ─── Checks ──────────────────────────────────────────────────────

    def _is_contract(self, address: str) -> bool:
        if address.lower() == ZERO_ADDRESS:
            return False
        if address.lower() == self.consumer_address.lower():
            return True
        return self._contracts is None or address.lower() in self._contracts

    def _require_lot(self, lot: int) -> dict[str, Entry]:
        if lot not in self._lots:
            raise LotNotInsertedError(lot)
        return self._lots[lot]

    def _require_entry(self, lot: int, key: str) -> Entry:
        entries = self._require_lot(lot)
        if key not in entries:
            raise EntryNotInsertedError(lot, key)
        return entries[key]

    @staticmethod
    def _require_keys(keys: Sequence[str]) -> None:
        if not keys:
            raise EntryRejectedError('Array "keys" is empty', field="keys", value=[])

    @staticmethod
    def _require_same_length(keys: Sequence[str], name: str, values: Sequence[object]) -> None:
        if len(keys) != len(values):
            raise EntryRejectedError(
                f'Array lengths are not equal: "keys" {len(keys)}, "{name}" {len(values)}',
                field=name,
                value=len(values),
            )

    def _validate_entry(self, entry: Entry) -> None:
        if entry.spec_id.lower() == _ZERO_BYTES32:
            raise EntryRejectedError("Entry field 'specId' is zero", "specId", entry.spec_id)
        if not self._is_contract(entry.oracle):
            raise EntryRejectedError("Entry field 'oracle' is not a contract", "oracle", entry.oracle)
        if entry.oracle.lower() == self.consumer_address.lower():
            raise EntryRejectedError("Entry field 'oracle' is the consumer", "oracle", entry.oracle)
        if entry.payment > LINK_TOTAL_SUPPLY:
            raise EntryRejectedError(
                "Entry field 'payment' is greater than the LINK total supply", "payment", entry.payment
            )
        if not self._is_contract(entry.callback_addr):
            raise EntryRejectedError(
                "Entry field 'callbackAddr' is not a contract", "callbackAddr", entry.callback_addr
            )
        if entry.callback_function_signature.lower() == ZERO_SELECTOR:
            raise EntryRejectedError(
                "Entry field 'callbackFunctionSignature' is zero",
                "callbackFunctionSignature",
                entry.callback_function_signature,
            )
        if entry.interval == 0:
            raise EntryRejectedError("Entry field 'interval' is zero", "interval", entry.interval)

    def _purge_lot(self, lot: int) -> None:
        self._lots.pop(lot, None)
        self._is_upkeep_allowed.pop(lot, None)
        self._last_request_timestamps.pop(lot, None)
        logger.debug(f"Lot {lot} purged")

    def _remove_keys(self, lot: int, keys: Sequence[str]) -> None:
        entries = self._lots[lot]
        timestamps = self._last_request_timestamps.get(lot, {})
        for key in keys:
            del entries[key]
            timestamps.pop(key, None)
        if not entries:
            self._purge_lot(lot)

    # ─── Reads ───────────────────────────────────────────────────────

    async def get_lot_is_inserted(self, lot: int) -> bool:
        return lot in self._lots

    async def get_lots(self) -> list[int]:
        return list(self._lots)

    async def get_entry_map_keys(self, lot: int) -> list[str]:
        return list(self._require_lot(lot))

    async def get_entry_is_inserted(self, lot: int, key: str) -> bool:
        return key in self._lots.get(lot, {})

    async def get_entry(self, lot: int, key: str) -> Entry:
        return self._require_entry(lot, key)

    async def get_is_upkeep_allowed(self, lot: int) -> bool:
        self._require_lot(lot)
        return self._is_upkeep_allowed.get(lot, False)

    async def get_last_request_timestamp(self, lot: int, key: str) -> int:
        self._require_entry(lot, key)
        return self._last_request_timestamps.get(lot, {}).get(key, 0)

    async def get_latest_round_id(self) -> int:
        return self._latest_round_id

    # ─── Writes ──────────────────────────────────────────────────────

    async def set_entry(self, lot: int, key: str, entry: Entry) -> None:
        self._validate_entry(entry)
        self._lots.setdefault(lot, {})[key] = entry
        self._last_request_timestamps.setdefault(lot, {})

    async def set_entries(self, lot: int, keys: Sequence[str], entries: Sequence[Entry]) -> None:
        self._require_keys(keys)
        self._require_same_length(keys, "entries", entries)
        # Checked upfront so a rejected entry leaves the lot untouched
        for entry in entries:
            self._validate_entry(entry)
        lot_entries = self._lots.setdefault(lot, {})
        self._last_request_timestamps.setdefault(lot, {})
        for key, entry in zip(keys, entries):
            lot_entries[key] = entry

    async def remove_entry(self, lot: int, key: str) -> None:
        self._require_entry(lot, key)
        self._remove_keys(lot, [key])

    async def remove_entries(self, lot: int, keys: Sequence[str]) -> None:
        self._require_lot(lot)
        self._require_keys(keys)
        seen: set[str] = set()
        for key in keys:
            # A repeated key is already gone by its second removal
            if key in seen:
                raise EntryNotInsertedError(lot, key)
            self._require_entry(lot, key)
            seen.add(key)
        self._remove_keys(lot, keys)

    async def remove_lot(self, lot: int) -> None:
        self._require_lot(lot)
        self._purge_lot(lot)

    async def set_is_upkeep_allowed(self, lot: int, is_upkeep_allowed: bool) -> None:
        self._require_lot(lot)
        self._is_upkeep_allowed[lot] = is_upkeep_allowed

    async def set_last_request_timestamp(self, lot: int, key: str, timestamp: int) -> None:
        self._require_entry(lot, key)
        self._last_request_timestamps.setdefault(lot, {})[key] = timestamp

    async def set_last_request_timestamps(
        self, lot: int, keys: Sequence[str], timestamps: Sequence[int]
    ) -> None:
        self._require_lot(lot)
        self._require_keys(keys)
        self._require_same_length(keys, "lastRequestTimestamps", timestamps)
        for key in keys:
            self._require_entry(lot, key)
        for key, timestamp in zip(keys, timestamps):
            self._last_request_timestamps.setdefault(lot, {})[key] = timestamp

    async def set_latest_round_id(self, round_id: int) -> None:
        self._latest_round_id = round_id
