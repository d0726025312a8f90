"""
LinkLot - Scheduled data-request entries for a Chainlink consumer

Keeps lots of declared request entries in sync with the on-chain consumer and
decodes the fulfillments they produce.

Usage:
    >>> from linklot import LinkLot, Config, FulfillmentEventFilter
    >>>
    >>> async with LinkLot(Config.from_env()) as linklot:
    ...     result = await linklot.import_entries_file(1, "entries.json")
    ...     fulfillments = await linklot.collect(FulfillmentEventFilter(from_block=1_000))
"""

from linklot.client import LinkLot
from linklot.collect import (
    CollectedFulfillment,
    CollectionPipeline,
    FulfillmentEventFilter,
    FulfillmentEventSource,
    InMemoryEventSource,
    JsonRpcEventSource,
)
from linklot.core.config import Config
from linklot.core.exceptions import (
    ConfigurationError,
    DecodeError,
    EncodingError,
    EntryNotInsertedError,
    EntryRejectedError,
    LinkLotError,
    LotNotInsertedError,
    MutationError,
    NetworkError,
    StoreError,
    TransactionError,
    ValidationError,
)
from linklot.core.logging import configure_logging, get_logger
from linklot.core.types import (
    Entry,
    EntryDiff,
    EntrySpec,
    FulfillmentEvent,
    MutationKind,
    MutationReport,
    RequestParameter,
    RequestParamType,
    RequestType,
    SyncResult,
)
from linklot.decoders import DecoderRegistry, DecoderSpec, build_default_registry
from linklot.encoding import derive_entry_key, encode_request_params
from linklot.entries import convert_entries, load_entries_file
from linklot.store import EntryStore, InMemoryEntryStore, JsonRpcEntryStore
from linklot.sync import BatchMutationExecutor, LotSynchronizer, compute_entry_diff

__version__ = "0.1.0"

__all__ = [
    # Main client
    "LinkLot",
    "Config",
    # Entries
    "Entry",
    "EntrySpec",
    "RequestParameter",
    "RequestParamType",
    "RequestType",
    "load_entries_file",
    "convert_entries",
    "encode_request_params",
    "derive_entry_key",
    # Stores
    "EntryStore",
    "InMemoryEntryStore",
    "JsonRpcEntryStore",
    # Sync
    "EntryDiff",
    "MutationKind",
    "MutationReport",
    "SyncResult",
    "compute_entry_diff",
    "BatchMutationExecutor",
    "LotSynchronizer",
    # Decoding & collection
    "DecoderRegistry",
    "DecoderSpec",
    "build_default_registry",
    "FulfillmentEvent",
    "FulfillmentEventFilter",
    "FulfillmentEventSource",
    "InMemoryEventSource",
    "JsonRpcEventSource",
    "CollectionPipeline",
    "CollectedFulfillment",
    # Exceptions
    "LinkLotError",
    "ConfigurationError",
    "ValidationError",
    "EncodingError",
    "StoreError",
    "LotNotInsertedError",
    "EntryNotInsertedError",
    "EntryRejectedError",
    "MutationError",
    "DecodeError",
    "NetworkError",
    "TransactionError",
    # Logging
    "configure_logging",
    "get_logger",
]
