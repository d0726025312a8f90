"""
Batched Mutation Executor.

Applies key sets to a lot in contiguous chunks, one store call per chunk,
strictly one after another.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from linklot.core.exceptions import LinkLotError, MutationError
from linklot.core.logging import get_logger
from linklot.core.types import Entry, MutationKind, MutationReport
from linklot.store.base import EntryStore

logger = get_logger("sync.executor")

_PAST_TENSE = {
    MutationKind.ADD: "Added",
    MutationKind.UPDATE: "Updated",
    MutationKind.REMOVE: "Removed",
}


def chunk_ranges(total: int, chunk_size: int) -> list[tuple[int, int]]:
    """Inclusive (start, end) index ranges of contiguous chunks."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be greater than zero, got {chunk_size}")
    return [(start, min(start + chunk_size, total) - 1) for start in range(0, total, chunk_size)]


class BatchMutationExecutor:
    """
    Executor for lot mutations.

    In batch mode each chunk is one `set_entries`/`remove_entries` call; in
    per-key mode each key is one `set_entry`/`remove_entry` call. A failing
    call aborts the run: earlier calls stay applied, later ones are never
    attempted, and a MutationError names the lot, keys and range involved.
    """

    def __init__(self, store: EntryStore, batch_mode: bool = True) -> None:
        self._store = store
        self.batch_mode = batch_mode

    async def execute(
        self,
        kind: MutationKind | str,
        lot: int,
        keys: Sequence[str],
        entries: Mapping[str, Entry] | None = None,
        chunk_size: int | None = None,
        file_indices: Mapping[str, int] | None = None,
    ) -> MutationReport:
        """
        Apply one kind of mutation to `keys`.

        Args:
            kind: add, update or remove
            lot: Target lot
            keys: Keys to mutate, in order
            entries: Entry source for add/update (must hold every key)
            chunk_size: Max keys per call in batch mode (None: one call)
            file_indices: Optional key -> entries file index, for logging

        Returns:
            MutationReport with the number of calls and keys applied
        """
        kind = MutationKind(kind)
        report = MutationReport(kind=kind, lot=lot)
        keys = list(keys)
        if not keys:
            logger.info(f"No entries to {kind.value} in lot {lot}")
            return report

        if kind is not MutationKind.REMOVE:
            if entries is None:
                raise ValueError(f"'{kind.value}' requires the entries to write")
            missing = [key for key in keys if key not in entries]
            if missing:
                raise ValueError(f"Missing entries for keys: {missing}")

        logger.info(f"{kind.value.capitalize()} {len(keys)} entries in lot {lot} ...")
        if self.batch_mode:
            await self._execute_batches(kind, lot, keys, entries, chunk_size or len(keys), report, file_indices)
        else:
            await self._execute_per_key(kind, lot, keys, entries, report, file_indices)
        return report

    async def _execute_batches(
        self,
        kind: MutationKind,
        lot: int,
        keys: list[str],
        entries: Mapping[str, Entry] | None,
        chunk_size: int,
        report: MutationReport,
        file_indices: Mapping[str, int] | None,
    ) -> None:
        for start, end in chunk_ranges(len(keys), chunk_size):
            chunk = keys[start : end + 1]
            try:
                if kind is MutationKind.REMOVE:
                    await self._store.remove_entries(lot, chunk)
                else:
                    assert entries is not None
                    await self._store.set_entries(lot, chunk, [entries[key] for key in chunk])
            except LinkLotError as e:
                logger.error(
                    f"Failed to {kind.value} batch ({start}, {end}) in lot {lot}: {e}",
                    extra={"lot": lot, "kind": kind.value},
                )
                raise MutationError(
                    f"Batch ({start}, {end}) failed: {e}",
                    kind=kind.value,
                    lot=lot,
                    keys=chunk,
                    chunk_range=(start, end),
                    details={"applied": list(report.keys_applied)},
                ) from e
            report.calls += 1
            report.keys_applied.extend(chunk)
            logger.info(
                f"{_PAST_TENSE[kind]} in batch ({start}, {end}) in lot {lot}"
                f"{self._format_indices(chunk, file_indices)}"
            )

    async def _execute_per_key(
        self,
        kind: MutationKind,
        lot: int,
        keys: list[str],
        entries: Mapping[str, Entry] | None,
        report: MutationReport,
        file_indices: Mapping[str, int] | None,
    ) -> None:
        for idx, key in enumerate(keys):
            try:
                if kind is MutationKind.REMOVE:
                    await self._store.remove_entry(lot, key)
                else:
                    assert entries is not None
                    await self._store.set_entry(lot, key, entries[key])
            except LinkLotError as e:
                logger.error(
                    f"Failed to {kind.value} entry {key} in lot {lot}: {e}",
                    extra={"lot": lot, "key": key, "kind": kind.value},
                )
                raise MutationError(
                    f"Entry {idx} failed: {e}",
                    kind=kind.value,
                    lot=lot,
                    keys=[key],
                    chunk_range=(idx, idx),
                    details={"applied": list(report.keys_applied)},
                ) from e
            report.calls += 1
            report.keys_applied.append(key)
            logger.info(f"{_PAST_TENSE[kind]} {key} in lot {lot}{self._format_indices([key], file_indices)}")

    @staticmethod
    def _format_indices(keys: Sequence[str], file_indices: Mapping[str, int] | None) -> str:
        if not file_indices:
            return ""
        indices = [file_indices[key] for key in keys if key in file_indices]
        return f". File indices: {indices}" if indices else ""
