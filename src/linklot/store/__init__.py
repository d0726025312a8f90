"""
Entry stores for LinkLot.

Example:
    >>> from linklot.store import InMemoryEntryStore, fetch_lot_snapshot
    >>>
    >>> store = InMemoryEntryStore()
    >>> snapshot = await fetch_lot_snapshot(store, lot=1)
"""

from linklot.store.base import EntryStore, fetch_lot_snapshot
from linklot.store.memory import InMemoryEntryStore
from linklot.store.rpc import JsonRpcEntryStore, map_revert_error

__all__ = [
    "EntryStore",
    "InMemoryEntryStore",
    "JsonRpcEntryStore",
    "fetch_lot_snapshot",
    "map_revert_error",
]
