"""LinkLot - Main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from linklot.collect.events import FulfillmentEventFilter, JsonRpcEventSource
from linklot.collect.pipeline import CollectedFulfillment, CollectionPipeline
from linklot.core.config import Config
from linklot.core.logging import configure_logging, get_logger
from linklot.core.rpc import JsonRpcClient
from linklot.core.types import Entry, EntrySpec, SyncResult
from linklot.decoders.catalogue import build_default_registry
from linklot.decoders.registry import DecoderRegistry
from linklot.entries.source import convert_entries, get_entry_file_indices, load_entries_file
from linklot.store.base import fetch_lot_snapshot
from linklot.store.rpc import JsonRpcEntryStore
from linklot.sync.importer import LotSynchronizer


class LinkLot:
    """
    Main client for LinkLot.

    Wires one JSON-RPC client into the entry store, the lot synchronizer and
    the collection pipeline of a deployed consumer.

    Usage:
        async with LinkLot(Config.from_env()) as linklot:
            result = await linklot.import_entries_file(1, "entries.json", dry_run=True)
            fulfillments = await linklot.collect(FulfillmentEventFilter(from_block=1_000))
    """

    def __init__(
        self,
        config: Config | None = None,
        registry: DecoderRegistry | None = None,
        client: JsonRpcClient | None = None,
        log_level: int | str | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Runtime configuration (or loaded from LINKLOT_* env vars)
            registry: Decoder registry (defaults to the full catalogue)
            client: JSON-RPC client shared by the store and event source
            log_level: Logging level (defaults to config.log_level)
        """
        self._config = config or Config.from_env()

        configure_logging(level=log_level or self._config.log_level)
        self._logger = get_logger("client")
        self._logger.info(f"Initializing LinkLot (consumer: {self._config.consumer_address})")

        self._client = client or JsonRpcClient(self._config.rpc_urls, timeout=self._config.request_timeout)
        self._registry = registry or build_default_registry()
        self._store = JsonRpcEntryStore.from_config(self._config, client=self._client)
        self._synchronizer = LotSynchronizer.from_config(self._store, self._config)
        self._events = JsonRpcEventSource(self._client, self._config.consumer_address, self._registry)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def store(self) -> JsonRpcEntryStore:
        return self._store

    @property
    def registry(self) -> DecoderRegistry:
        return self._registry

    @property
    def synchronizer(self) -> LotSynchronizer:
        return self._synchronizer

    async def get_chain_id(self) -> int:
        """Configured chain id, or the one reported by the node."""
        if self._config.chain_id is not None:
            return self._config.chain_id
        return await self._client.chain_id()

    async def load_entries(self, path: str | Path) -> list[EntrySpec]:
        """Load and validate an entries file against the target chain."""
        return load_entries_file(path, chain_id=await self.get_chain_id())

    async def get_lot_snapshot(self, lot: int) -> dict[str, Entry]:
        return await fetch_lot_snapshot(self._store, lot)

    async def import_entries_file(self, lot: int, path: str | Path, dry_run: bool = False) -> SyncResult:
        """Synchronize a lot with the entries declared in a file."""
        specs = await self.load_entries(path)
        entries = convert_entries(specs)
        self._logger.info(f"Importing {len(entries)} entries from {path} into lot {lot}")
        return await self._synchronizer.import_entries(
            lot, entries, dry_run=dry_run, file_indices=get_entry_file_indices(specs, entries)
        )

    async def collect(
        self,
        event_filter: FulfillmentEventFilter | None = None,
        include_transactions: bool = False,
    ) -> list[CollectedFulfillment]:
        """
        Collect and decode fulfilled requests.

        Args:
            event_filter: Topic and block filters
            include_transactions: Also fetch and decode each fulfillment
                transaction and its block timestamp
        """
        pipeline = CollectionPipeline(
            self._events,
            self._registry,
            client=self._client if include_transactions else None,
        )
        return await pipeline.collect(event_filter)

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> LinkLot:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
