"""
Reconciliation of a declared entry set against a lot snapshot.

Pure set algebra over entry keys: no I/O, and diffing the result of
applying a diff yields an empty diff.
"""

from __future__ import annotations

from collections.abc import Mapping

from linklot.core.types import Entry, EntryDiff


def has_entry_differences(local: Entry, remote: Entry) -> bool:
    """
    Whether two entries with the same key need an update.

    Only the fields outside the key identity are compared: payment,
    callback address, callback selector, schedule and the inactive flag.
    """
    return (
        local.payment != remote.payment
        or local.callback_addr.lower() != remote.callback_addr.lower()
        or local.callback_function_signature.lower() != remote.callback_function_signature.lower()
        or local.start_at != remote.start_at
        or local.interval != remote.interval
        or local.inactive != remote.inactive
    )


def compute_entry_diff(local: Mapping[str, Entry], remote: Mapping[str, Entry]) -> EntryDiff:
    """
    Diff local entries against remote ones.

    Returns:
        EntryDiff where to_add = local - remote, to_remove = remote - local,
        to_check = local & remote and to_update the checked keys whose
        entries differ. Local order is kept for add/check/update, remote
        order for remove.
    """
    to_add = tuple(key for key in local if key not in remote)
    to_remove = tuple(key for key in remote if key not in local)
    to_check = tuple(key for key in local if key in remote)
    to_update = tuple(key for key in to_check if has_entry_differences(local[key], remote[key]))
    return EntryDiff(to_add=to_add, to_remove=to_remove, to_check=to_check, to_update=to_update)
