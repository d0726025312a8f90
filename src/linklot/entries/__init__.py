"""Declarative entries files: parsing, validation and conversion."""

from linklot.entries.source import (
    convert_entries,
    convert_entry,
    find_entry_spec,
    generate_entry_key,
    get_entry_file_indices,
    load_entries_file,
    parse_entries_file,
)
from linklot.entries.validation import check_entries_integrity

__all__ = [
    "check_entries_integrity",
    "convert_entries",
    "convert_entry",
    "find_entry_spec",
    "generate_entry_key",
    "get_entry_file_indices",
    "load_entries_file",
    "parse_entries_file",
]
