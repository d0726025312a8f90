"""
Exception hierarchy for LinkLot.

All package-specific exceptions inherit from LinkLotError for easy catching.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class LinkLotError(Exception):
    """
    Base exception for all LinkLot errors.

    Catch this to handle any package-related exception.

    Example:
        >>> try:
        ...     await synchronizer.import_entries(lot, entries)
        ... except LinkLotError as e:
        ...     print(f"Sync error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(LinkLotError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - Configuration values fail validation
    """

    pass


class ValidationError(LinkLotError):
    """
    Declarative input failed validation.

    Raised before any network call when an entries file item (or a single
    field handed to a validator) is malformed. Carries the offending field,
    its value and, when known, the position of the entry in the source.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value
        self.index = index

    def __str__(self) -> str:
        prefix = f"[entry {self.index}] " if self.index is not None else ""
        return f"{prefix}{self.message}"


class EncodingErrorReason(str, Enum):
    """Why a request parameter list could not be encoded."""

    UNSUPPORTED_TYPE = "unsupported_type"
    ARITY_MISMATCH = "arity_mismatch"
    INVALID_VALUE = "invalid_value"
    ABI_ENCODING = "abi_encoding"


class EncodingError(LinkLotError):
    """
    Request parameters could not be encoded into a buffer.

    Raised when:
    - A parameter declares an unknown type
    - A bytes parameter has no valueTypes or their length differs from value
    - A value does not fit its declared type
    - ABI sub-encoding of a bytes parameter fails
    """

    def __init__(
        self,
        message: str,
        reason: EncodingErrorReason,
        param_name: str | None = None,
        param_index: int | None = None,
        entry_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.reason = reason
        self.param_name = param_name
        self.param_index = param_index
        self.entry_index = entry_index

    def __str__(self) -> str:
        location = []
        if self.entry_index is not None:
            location.append(f"entry {self.entry_index}")
        if self.param_index is not None:
            location.append(f"param {self.param_index} '{self.param_name}'")
        where = f" ({', '.join(location)})" if location else ""
        return f"[encoding:{self.reason.value}] {self.message}{where}"


class StoreError(LinkLotError):
    """Base exception for remote entry store failures."""

    pass


class LotNotInsertedError(StoreError):
    """The lot does not exist in the remote store."""

    def __init__(self, lot: int, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Lot {lot} is not inserted", details)
        self.lot = lot


class EntryNotInsertedError(StoreError):
    """The entry key does not exist in the given lot."""

    def __init__(self, lot: int, key: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Entry {key} is not inserted in lot {lot}", details)
        self.lot = lot
        self.key = key


class EntryRejectedError(StoreError):
    """
    The remote store refused an entry field.

    Raised when:
    - The oracle or callback address is the zero address or not a contract
    - The oracle is the consumer itself
    - The payment exceeds the LINK total supply
    - The callback function signature is zero
    - The interval is zero
    - A keys array is empty or does not match the entries array
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class MutationError(LinkLotError):
    """
    A chunked write against the remote store failed.

    Prior chunks remain applied; later chunks were never attempted.
    """

    def __init__(
        self,
        message: str,
        kind: str,
        lot: int,
        keys: list[str],
        chunk_range: tuple[int, int] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind
        self.lot = lot
        self.keys = keys
        self.chunk_range = chunk_range

    def __str__(self) -> str:
        chunk = f" chunk {self.chunk_range}" if self.chunk_range else ""
        return f"[{self.kind}] {self.message} (lot {self.lot}{chunk}, keys: {self.keys})"


class DecodeError(LinkLotError):
    """A registered decoder failed against a payload."""

    def __init__(
        self,
        message: str,
        selector: str,
        name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.selector = selector
        self.name = name

    def __str__(self) -> str:
        return f"[{self.selector} {self.name or 'unknown'}] {self.message}"


class NetworkError(LinkLotError):
    """
    Network or JSON-RPC communication error.

    Raised when:
    - HTTP request fails (timeout, connection error)
    - Every configured RPC endpoint failed
    - The node returned a JSON-RPC error
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_rate_limited(self) -> bool:
        """Check if this is a rate limit error."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class JsonRpcError(NetworkError):
    """
    The node answered with a JSON-RPC error object.

    Reverted calls carry the revert data in `data`, which stores decode back
    into typed exceptions.
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        data: str | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, url=url, details=details)
        self.code = code
        self.data = data

    @property
    def is_revert(self) -> bool:
        """Whether the error is an execution revert."""
        return self.code == 3 or "revert" in self.message.lower()


class TransactionError(LinkLotError):
    """
    A submitted transaction was not durably accepted.

    Raised when:
    - The receipt reports a reverted status
    - Polling for the receipt exceeded the timeout
    """

    def __init__(
        self,
        message: str,
        tx_hash: str | None,
        stage: str,  # "submit", "receipt", "timeout"
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.tx_hash = tx_hash
        self.stage = stage

    def __str__(self) -> str:
        return f"[tx:{self.stage}] {self.message} (tx: {self.tx_hash})"
