"""
Unit tests for InMemoryEntryStore.

Covers field checks, batch atomicity and the lot lifecycle: a lot exists
only while it holds entries.
"""

import dataclasses

import pytest

from linklot.core.exceptions import EntryNotInsertedError, EntryRejectedError, LotNotInsertedError
from linklot.core.types import LINK_TOTAL_SUPPLY, ZERO_ADDRESS
from linklot.store.base import fetch_lot_snapshot
from linklot.store.memory import InMemoryEntryStore

from conftest import CALLBACK, CONSUMER, JOB_ID_2, ORACLE, build_entry


@pytest.fixture
def store() -> InMemoryEntryStore:
    return InMemoryEntryStore(consumer_address=CONSUMER)


class TestReadsAndWrites:
    @pytest.mark.asyncio
    async def test_set_and_get_entry(self, store) -> None:
        entry = build_entry()

        await store.set_entry(1, entry.key, entry)

        assert await store.get_lot_is_inserted(1)
        assert await store.get_lots() == [1]
        assert await store.get_entry_map_keys(1) == [entry.key]
        assert await store.get_entry_is_inserted(1, entry.key)
        assert await store.get_entry(1, entry.key) == entry

    @pytest.mark.asyncio
    async def test_missing_lot(self, store) -> None:
        assert not await store.get_lot_is_inserted(1)
        assert not await store.get_entry_is_inserted(1, "0x01")
        with pytest.raises(LotNotInsertedError):
            await store.get_entry_map_keys(1)
        with pytest.raises(LotNotInsertedError):
            await store.get_is_upkeep_allowed(1)

    @pytest.mark.asyncio
    async def test_missing_entry(self, store) -> None:
        entry = build_entry()
        await store.set_entry(1, entry.key, entry)

        with pytest.raises(EntryNotInsertedError) as exc_info:
            await store.get_entry(1, "0x" + "ab" * 32)

        assert exc_info.value.lot == 1

    @pytest.mark.asyncio
    async def test_set_entries_overwrites_existing(self, store) -> None:
        entry = build_entry()
        updated = dataclasses.replace(entry, payment=1)
        await store.set_entries(1, [entry.key], [entry])

        await store.set_entries(1, [entry.key], [updated])

        assert (await store.get_entry(1, entry.key)).payment == 1
        assert await store.get_entry_map_keys(1) == [entry.key]

    @pytest.mark.asyncio
    async def test_snapshot(self, store) -> None:
        a = build_entry()
        b = build_entry(job_id=JOB_ID_2)
        await store.set_entries(1, [a.key, b.key], [a, b])

        assert await fetch_lot_snapshot(store, 1) == {a.key: a, b.key: b}
        assert await fetch_lot_snapshot(store, 2) == {}

    @pytest.mark.asyncio
    async def test_latest_round_id(self, store) -> None:
        assert await store.get_latest_round_id() == 0
        await store.set_latest_round_id(42)
        assert await store.get_latest_round_id() == 42


class TestFieldChecks:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes, field",
        [
            ({"spec_id": "0x" + "0" * 64}, "specId"),
            ({"oracle": ZERO_ADDRESS}, "oracle"),
            ({"oracle": CONSUMER}, "oracle"),
            ({"payment": LINK_TOTAL_SUPPLY + 1}, "payment"),
            ({"callback_addr": ZERO_ADDRESS}, "callbackAddr"),
            ({"callback_function_signature": "0x00000000"}, "callbackFunctionSignature"),
            ({"interval": 0}, "interval"),
        ],
    )
    async def test_rejected_fields(self, store, changes, field) -> None:
        entry = dataclasses.replace(build_entry(), **changes)

        with pytest.raises(EntryRejectedError) as exc_info:
            await store.set_entry(1, entry.key, entry)

        assert exc_info.value.field == field
        assert not await store.get_lot_is_inserted(1)

    @pytest.mark.asyncio
    async def test_payment_equal_to_total_supply_is_accepted(self, store) -> None:
        entry = dataclasses.replace(build_entry(), payment=LINK_TOTAL_SUPPLY)

        await store.set_entry(1, entry.key, entry)

    @pytest.mark.asyncio
    async def test_known_contracts_only(self) -> None:
        store = InMemoryEntryStore(consumer_address=CONSUMER, contract_addresses=[ORACLE])
        entry = build_entry()

        with pytest.raises(EntryRejectedError) as exc_info:
            await store.set_entry(1, entry.key, entry)
        assert exc_info.value.field == "callbackAddr"

        store.set_code(CALLBACK)
        await store.set_entry(1, entry.key, entry)

    @pytest.mark.asyncio
    async def test_consumer_can_be_the_callback(self) -> None:
        store = InMemoryEntryStore(consumer_address=CONSUMER, contract_addresses=[ORACLE])
        entry = build_entry(callback_addr=CONSUMER)

        await store.set_entry(1, entry.key, entry)

    @pytest.mark.asyncio
    async def test_set_entries_is_atomic(self, store) -> None:
        good = build_entry()
        bad = dataclasses.replace(build_entry(job_id=JOB_ID_2), interval=0)

        with pytest.raises(EntryRejectedError):
            await store.set_entries(1, [good.key, bad.key], [good, bad])

        assert not await store.get_lot_is_inserted(1)

    @pytest.mark.asyncio
    async def test_empty_keys(self, store) -> None:
        with pytest.raises(EntryRejectedError) as exc_info:
            await store.set_entries(1, [], [])

        assert exc_info.value.field == "keys"

    @pytest.mark.asyncio
    async def test_length_mismatch(self, store) -> None:
        entry = build_entry()

        with pytest.raises(EntryRejectedError) as exc_info:
            await store.set_entries(1, [entry.key, "0x" + "ab" * 32], [entry])

        assert exc_info.value.field == "entries"


class TestLotLifecycle:
    @pytest.mark.asyncio
    async def test_removing_last_entry_purges_lot(self, store) -> None:
        entry = build_entry()
        await store.set_entry(1, entry.key, entry)
        await store.set_is_upkeep_allowed(1, True)
        await store.set_last_request_timestamp(1, entry.key, 1_650_000_000)

        await store.remove_entry(1, entry.key)

        assert not await store.get_lot_is_inserted(1)
        assert await store.get_lots() == []

    @pytest.mark.asyncio
    async def test_reinserted_entry_starts_clean(self, store) -> None:
        entry = build_entry()
        await store.set_entry(1, entry.key, entry)
        await store.set_is_upkeep_allowed(1, True)
        await store.set_last_request_timestamp(1, entry.key, 1_650_000_000)
        await store.remove_entries(1, [entry.key])

        await store.set_entry(1, entry.key, entry)

        assert await store.get_last_request_timestamp(1, entry.key) == 0
        assert await store.get_is_upkeep_allowed(1) is False

    @pytest.mark.asyncio
    async def test_removing_one_of_many_keeps_lot(self, store) -> None:
        a = build_entry()
        b = build_entry(job_id=JOB_ID_2)
        await store.set_entries(1, [a.key, b.key], [a, b])
        await store.set_last_request_timestamps(1, [a.key, b.key], [10, 20])

        await store.remove_entry(1, a.key)

        assert await store.get_entry_map_keys(1) == [b.key]
        assert await store.get_last_request_timestamp(1, b.key) == 20

    @pytest.mark.asyncio
    async def test_remove_entries_checks_every_key_first(self, store) -> None:
        entry = build_entry()
        await store.set_entry(1, entry.key, entry)

        with pytest.raises(EntryNotInsertedError):
            await store.remove_entries(1, [entry.key, "0x" + "ab" * 32])

        assert await store.get_entry_is_inserted(1, entry.key)

    @pytest.mark.asyncio
    async def test_remove_entries_rejects_repeated_key(self, store) -> None:
        a = build_entry()
        b = build_entry(job_id=JOB_ID_2)
        await store.set_entries(1, [a.key, b.key], [a, b])

        with pytest.raises(EntryNotInsertedError) as exc_info:
            await store.remove_entries(1, [a.key, a.key])

        assert exc_info.value.key == a.key
        assert await store.get_entry_map_keys(1) == [a.key, b.key]

    @pytest.mark.asyncio
    async def test_remove_from_missing_lot(self, store) -> None:
        with pytest.raises(LotNotInsertedError):
            await store.remove_entries(1, ["0x01"])
        with pytest.raises(LotNotInsertedError):
            await store.remove_lot(1)

    @pytest.mark.asyncio
    async def test_remove_lot(self, store) -> None:
        a = build_entry()
        b = build_entry(job_id=JOB_ID_2)
        await store.set_entries(1, [a.key, b.key], [a, b])

        await store.remove_lot(1)

        assert not await store.get_lot_is_inserted(1)

    @pytest.mark.asyncio
    async def test_from_snapshot(self) -> None:
        entry = build_entry()

        store = InMemoryEntryStore.from_snapshot(3, {entry.key: entry}, consumer_address=CONSUMER)

        assert await store.get_entry_map_keys(3) == [entry.key]
        assert await store.get_last_request_timestamp(3, entry.key) == 0
