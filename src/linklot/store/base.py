"""
Abstract Entry Store.

The remote, authoritative holder of lots and their entries. Implementations
emulate the consumer contract in memory or talk to it over JSON-RPC.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from linklot.core.types import Entry


class EntryStore(ABC):
    """
    Abstract base class for entry stores.

    A lot exists only while it holds at least one entry. Reads against a
    missing lot raise LotNotInsertedError; reads and writes against a missing
    key raise EntryNotInsertedError. Writes return once durably accepted.
    """

    # ─── Reads ───────────────────────────────────────────────────────

    @abstractmethod
    async def get_lot_is_inserted(self, lot: int) -> bool:
        """Whether the lot holds at least one entry."""
        ...

    @abstractmethod
    async def get_lots(self) -> list[int]:
        """Inserted lots, in insertion order."""
        ...

    @abstractmethod
    async def get_entry_map_keys(self, lot: int) -> list[str]:
        """
        Get the keys of a lot, in insertion order.

        Raises:
            LotNotInsertedError: If the lot does not exist
        """
        ...

    @abstractmethod
    async def get_entry_is_inserted(self, lot: int, key: str) -> bool:
        ...

    @abstractmethod
    async def get_entry(self, lot: int, key: str) -> Entry:
        """
        Get a stored entry.

        Raises:
            LotNotInsertedError: If the lot does not exist
            EntryNotInsertedError: If the key is not in the lot
        """
        ...

    @abstractmethod
    async def get_is_upkeep_allowed(self, lot: int) -> bool:
        ...

    @abstractmethod
    async def get_last_request_timestamp(self, lot: int, key: str) -> int:
        ...

    @abstractmethod
    async def get_latest_round_id(self) -> int:
        ...

    # ─── Writes ──────────────────────────────────────────────────────

    @abstractmethod
    async def set_entry(self, lot: int, key: str, entry: Entry) -> None:
        """Insert or overwrite one entry (creates the lot if needed)."""
        ...

    @abstractmethod
    async def set_entries(self, lot: int, keys: Sequence[str], entries: Sequence[Entry]) -> None:
        """
        Insert or overwrite several entries atomically.

        Raises:
            EntryRejectedError: Empty keys, mismatched lengths or an invalid field
        """
        ...

    @abstractmethod
    async def remove_entry(self, lot: int, key: str) -> None:
        """Remove one entry; removing the last one purges the lot."""
        ...

    @abstractmethod
    async def remove_entries(self, lot: int, keys: Sequence[str]) -> None:
        """Remove several entries atomically."""
        ...

    @abstractmethod
    async def remove_lot(self, lot: int) -> None:
        """Remove every entry of the lot and purge its state."""
        ...

    @abstractmethod
    async def set_is_upkeep_allowed(self, lot: int, is_upkeep_allowed: bool) -> None:
        ...

    @abstractmethod
    async def set_last_request_timestamp(self, lot: int, key: str, timestamp: int) -> None:
        ...

    @abstractmethod
    async def set_last_request_timestamps(
        self, lot: int, keys: Sequence[str], timestamps: Sequence[int]
    ) -> None:
        ...

    @abstractmethod
    async def set_latest_round_id(self, round_id: int) -> None:
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        return None


async def fetch_lot_snapshot(store: EntryStore, lot: int) -> dict[str, Entry]:
    """
    Read every entry of a lot as an ordered {key: Entry} map.

    A lot that is not inserted yields an empty snapshot.
    """
    if not await store.get_lot_is_inserted(lot):
        return {}
    snapshot: dict[str, Entry] = {}
    for key in await store.get_entry_map_keys(lot):
        snapshot[key] = await store.get_entry(lot, key)
    return snapshot
