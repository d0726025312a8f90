"""
Lot synchronizer.

Brings a lot in line with a declared entry set: snapshot the lot, diff it,
then remove, update and add, in that order.
"""

from __future__ import annotations

from collections.abc import Mapping

from linklot.core.config import Config
from linklot.core.logging import get_logger
from linklot.core.types import DEFAULT_BATCH_SIZE, Entry, MutationKind, SyncResult
from linklot.store.base import EntryStore, fetch_lot_snapshot
from linklot.store.memory import DEFAULT_CONSUMER_ADDRESS, InMemoryEntryStore
from linklot.sync.executor import BatchMutationExecutor
from linklot.sync.reconcile import compute_entry_diff

logger = get_logger("sync.importer")


class LotSynchronizer:
    """
    Synchronizes lots of a store against declared entries.

    Usage:
        store = JsonRpcEntryStore.from_config(config)
        synchronizer = LotSynchronizer(store, batch_size=config.batch_size)
        entries = convert_entries(load_entries_file("entries.json"))
        result = await synchronizer.import_entries(lot=1, entries=entries)
    """

    def __init__(
        self,
        store: EntryStore,
        batch_mode: bool = True,
        batch_size: int | None = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size is not None and batch_size <= 0:
            raise ValueError(f"batch_size must be greater than zero, got {batch_size}")
        self._store = store
        self.batch_mode = batch_mode
        self.batch_size = batch_size

    @classmethod
    def from_config(cls, store: EntryStore, config: Config) -> LotSynchronizer:
        return cls(store, batch_mode=config.batch_mode, batch_size=config.batch_size)

    async def import_entries(
        self,
        lot: int,
        entries: Mapping[str, Entry],
        dry_run: bool = False,
        file_indices: Mapping[str, int] | None = None,
    ) -> SyncResult:
        """
        Reconcile a lot with the declared entries.

        Args:
            lot: Target lot
            entries: Ordered {key: Entry} map (entries file order)
            dry_run: Replay the mutations against an in-memory copy of the
                lot instead of the store
            file_indices: key -> entries file index for log annotations
                (defaults to the position in `entries`)

        Returns:
            SyncResult with the diff and one report per mutation kind

        Raises:
            MutationError: A chunk failed; prior chunks remain applied
        """
        remote = await fetch_lot_snapshot(self._store, lot)
        logger.info(f"Lot {lot} holds {len(remote)} entries; {len(entries)} declared")

        diff = compute_entry_diff(entries, remote)
        if file_indices is None:
            file_indices = {key: idx for idx, key in enumerate(entries)}
        logger.info(
            f"Lot {lot} diff: {len(diff.to_add)} to add, {len(diff.to_remove)} to remove, "
            f"{len(diff.to_update)} to update ({len(diff.to_check)} checked)"
        )
        if diff.is_empty:
            logger.info(f"Lot {lot} is up to date")

        target = self._store
        if dry_run:
            target = InMemoryEntryStore.from_snapshot(lot, remote, consumer_address=self._consumer_address())
            logger.info(f"Dry run: mutations for lot {lot} are applied to an in-memory copy")

        executor = BatchMutationExecutor(target, batch_mode=self.batch_mode)
        result = SyncResult(lot=lot, diff=diff, dry_run=dry_run)
        result.removed = await executor.execute(
            MutationKind.REMOVE, lot, diff.to_remove, chunk_size=self.batch_size
        )
        result.updated = await executor.execute(
            MutationKind.UPDATE,
            lot,
            diff.to_update,
            entries=entries,
            chunk_size=self.batch_size,
            file_indices=file_indices,
        )
        result.added = await executor.execute(
            MutationKind.ADD,
            lot,
            diff.to_add,
            entries=entries,
            chunk_size=self.batch_size,
            file_indices=file_indices,
        )
        return result

    def _consumer_address(self) -> str:
        address = getattr(self._store, "consumer_address", None)
        return address if isinstance(address, str) else DEFAULT_CONSUMER_ADDRESS
