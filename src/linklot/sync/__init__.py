"""Reconciliation and batched synchronization of lots."""

from linklot.sync.executor import BatchMutationExecutor, chunk_ranges
from linklot.sync.importer import LotSynchronizer
from linklot.sync.reconcile import compute_entry_diff, has_entry_differences

__all__ = [
    "BatchMutationExecutor",
    "LotSynchronizer",
    "chunk_ranges",
    "compute_entry_diff",
    "has_entry_differences",
]
