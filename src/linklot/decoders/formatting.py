"""Human-readable rendering of decoded fulfillment values."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def hex_to_int(value: str) -> int:
    """Parse a hex string (with or without 0x) as an unsigned integer."""
    raw = value[2:] if value.startswith("0x") else value
    return int(raw or "0", 16)


def hex_to_text(value: str | bytes) -> str:
    """Decode hex (or raw bytes) as UTF-8, replacing invalid sequences."""
    if isinstance(value, str):
        raw = value[2:] if value.startswith("0x") else value
        value = bytes.fromhex(raw)
    return value.decode("utf-8", errors="replace")


def log_timestamp(value: int | str) -> str:
    """Render an epoch timestamp as `<value> (<ISO-8601 UTC>)`."""
    moment = datetime.fromtimestamp(int(value), tz=timezone.utc)
    return f"{value} ({moment.strftime('%Y-%m-%dT%H:%M:%S.000Z')})"


def log_timestamp_from_hex_str(value: str) -> str:
    return log_timestamp(hex_to_int(value))


def log_hex_str(value: str) -> str:
    """Render a hex string (without 0x) with its text, NUL bytes stripped."""
    return f"0x{value} ({hex_to_text(value).replace(chr(0), '')})"


def to_display(value: Any) -> Any:
    """Convert ABI-decoded values for logging: bytes to 0x hex, tuples to lists."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [to_display(item) for item in value]
    return value
