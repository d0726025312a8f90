"""
Declarative entries source.

Loads an entries JSON file, validates it as a whole and converts each item
into its on-chain Entry shape keyed by its entry key.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from eth_utils import encode_hex

from linklot.core.exceptions import EncodingError, ValidationError
from linklot.core.logging import get_logger
from linklot.core.types import Entry, EntrySpec
from linklot.encoding.keys import convert_job_id_to_spec_id, derive_entry_key, function_selector
from linklot.encoding.params import encode_request_params
from linklot.entries.validation import check_entries_integrity

logger = get_logger("entries.source")


def parse_entries_file(path: str | Path) -> list[Any]:
    """Read and parse an entries JSON file (no validation)."""
    file_path = Path(path)
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Unexpected error reading file: {file_path}. Make sure the JSON file exists")
        raise ValidationError(f"Unable to read entries file {file_path}: {e}", "file", str(file_path)) from e


def load_entries_file(
    path: str | Path,
    chain_id: int | None = None,
    unique_job_ids: bool = True,
) -> list[EntrySpec]:
    """
    Parse and validate an entries file.

    All-or-nothing: any invalid item aborts the whole load.

    Raises:
        ValidationError: Unreadable file or invalid item (with its index)
    """
    raw_entries = parse_entries_file(path)
    check_entries_integrity(raw_entries, chain_id=chain_id, unique_job_ids=unique_job_ids)
    return [EntrySpec.from_dict(item) for item in raw_entries]


def convert_entry(spec: EntrySpec) -> Entry:
    """Convert a declared entry into its on-chain shape."""
    request_data = spec.request_data
    spec_id = convert_job_id_to_spec_id(request_data.external_job_id)
    buffer = encode_hex(encode_request_params(request_data.request_params))
    return Entry(
        key=derive_entry_key(spec_id, request_data.oracle_addr, buffer),
        spec_id=spec_id,
        oracle=request_data.oracle_addr,
        payment=request_data.payment,
        callback_addr=request_data.callback_addr,
        callback_function_signature=function_selector(request_data.callback_function_name),
        request_type=request_data.request_type,
        buffer=buffer,
        start_at=spec.schedule.start_at,
        interval=spec.schedule.interval,
        inactive=spec.inactive,
    )


def convert_entries(specs: Sequence[EntrySpec]) -> dict[str, Entry]:
    """
    Convert declared entries into an ordered {key: Entry} map.

    Two items resolving to the same key collapse into one entry (the later
    item wins); a warning names both file indices.

    Raises:
        EncodingError: With `entry_index` set to the failing item
    """
    entries: dict[str, Entry] = {}
    file_indices: dict[str, int] = {}
    for idx, spec in enumerate(specs):
        try:
            entry = convert_entry(spec)
        except EncodingError as e:
            e.entry_index = idx
            logger.error(
                f"Unexpected error encoding the 'requestParams' of the entry at index {idx}: {e}",
                extra={"entry_index": idx},
            )
            raise
        if entry.key in entries:
            logger.warning(
                f"Entries at index {file_indices[entry.key]} and {idx} resolve to the same key {entry.key}"
            )
        entries[entry.key] = entry
        file_indices[entry.key] = idx
    return entries


def get_entry_file_indices(specs: Sequence[EntrySpec], entries: dict[str, Entry]) -> dict[str, int]:
    """Map each converted entry key back to its position in the entries file."""
    keys = list(entries)
    indices: dict[str, int] = {}
    for idx, spec in enumerate(specs):
        key = generate_entry_key(spec)
        if key in entries:
            indices[key] = idx
    # Keep the map order aligned with the entry map order
    return {key: indices[key] for key in keys if key in indices}


def find_entry_spec(specs: Sequence[EntrySpec], job_id: int, job_case: int) -> EntrySpec:
    """
    Find the single entry declared for (job_id, job_case).

    Raises:
        ValidationError: No entry or more than one entry matches
    """
    matches = [s for s in specs if s.description.job_id == job_id and s.description.job_case == job_case]
    if not matches:
        raise ValidationError(
            f"Missing entry by 'jobId' {job_id} and 'jobCase' {job_case}", "jobId", job_id
        )
    if len(matches) > 1:
        raise ValidationError(
            f"Multiple entries found by 'jobId' {job_id} and 'jobCase' {job_case}", "jobId", job_id
        )
    return matches[0]


def generate_entry_key(spec: EntrySpec) -> str:
    """Compute the entry key of a declared entry."""
    request_data = spec.request_data
    return derive_entry_key(
        convert_job_id_to_spec_id(request_data.external_job_id),
        request_data.oracle_addr,
        encode_request_params(request_data.request_params),
    )
