"""
Test suite for listing pending requests.
"""

import pytest
from pycardano import Address, Value, VerificationKeyHash
from pycardano.serialization import IndefiniteList

from smart_handles.core.types import AdvancedDatum, SimpleDatum
from smart_handles.endpoints.fetch import fetch_batch_requests, fetch_single_requests

from conftest import (
    BATCH,
    OTHER_ADDRESS,
    OTHER_KEY_HASH,
    SCRIPT_HEX,
    SINGLE,
    WALLET_ADDRESS,
    advanced_datum,
    make_utxo,
    out_ref,
    pointer_owner_datum,
    simple_datum,
)


class TestFetchRequests:
    """Tests for the single and batch request listings."""

    @pytest.mark.asyncio
    async def test_single_requests_sorted(self, ledger):
        ledger.add_utxo(make_utxo(0x03, SINGLE.address, Value(5_000_000), datum=simple_datum()))
        ledger.add_utxo(make_utxo(0x01, SINGLE.address, Value(6_000_000), datum=advanced_datum()))

        requests = await fetch_single_requests(ledger, SCRIPT_HEX)

        assert [r.out_ref for r in requests] == [out_ref(0x01), out_ref(0x03)]
        assert isinstance(requests[0].datum, AdvancedDatum)
        assert isinstance(requests[1].datum, SimpleDatum)
        assert requests[0].value.coin == 6_000_000

    @pytest.mark.asyncio
    async def test_skips_unreadable_outputs(self, ledger):
        ledger.add_utxo(make_utxo(0x01, SINGLE.address, Value(5_000_000)))
        ledger.add_utxo(make_utxo(0x02, SINGLE.address, Value(5_000_000), datum=bytes.fromhex("182a")))
        ledger.add_utxo(make_utxo(0x03, SINGLE.address, Value(5_000_000), datum=simple_datum()))

        requests = await fetch_single_requests(ledger, SCRIPT_HEX)

        assert [r.out_ref for r in requests] == [out_ref(0x03)]

    @pytest.mark.asyncio
    async def test_only_queries_own_address(self, ledger):
        ledger.add_utxo(make_utxo(0x01, SINGLE.address, Value(5_000_000), datum=simple_datum()))
        ledger.add_utxo(make_utxo(0x02, BATCH.spend.address, Value(5_000_000), datum=simple_datum()))

        single = await fetch_single_requests(ledger, SCRIPT_HEX)
        batch = await fetch_batch_requests(ledger, SCRIPT_HEX)

        assert [r.out_ref for r in single] == [out_ref(0x01)]
        assert [r.out_ref for r in batch] == [out_ref(0x02)]

    @pytest.mark.asyncio
    async def test_owner_filter_matches_payment_credential(self, ledger):
        ledger.add_utxo(make_utxo(0x01, BATCH.spend.address, Value(5_000_000), datum=simple_datum(WALLET_ADDRESS)))
        ledger.add_utxo(make_utxo(0x02, BATCH.spend.address, Value(5_000_000), datum=simple_datum(OTHER_ADDRESS)))
        ledger.add_utxo(make_utxo(0x03, BATCH.spend.address, Value(5_000_000), datum=advanced_datum(OTHER_ADDRESS)))
        ledger.add_utxo(make_utxo(0x04, BATCH.spend.address, Value(5_000_000), datum=advanced_datum(owner=None)))

        # same payment key as OTHER_ADDRESS, without the stake part
        owner = Address(VerificationKeyHash(OTHER_KEY_HASH), network=OTHER_ADDRESS.network)
        requests = await fetch_batch_requests(ledger, SCRIPT_HEX, owner)

        assert [r.out_ref for r in requests] == [out_ref(0x02), out_ref(0x03)]

    @pytest.mark.asyncio
    async def test_skips_non_constructor_datums(self, ledger):
        ledger.add_utxo(make_utxo(0x01, SINGLE.address, Value(5_000_000), datum=42))
        ledger.add_utxo(make_utxo(0x02, SINGLE.address, Value(5_000_000), datum={1: 2}))
        ledger.add_utxo(make_utxo(0x03, SINGLE.address, Value(5_000_000), datum=IndefiniteList([1])))
        ledger.add_utxo(make_utxo(0x04, SINGLE.address, Value(5_000_000), datum=simple_datum()))

        requests = await fetch_single_requests(ledger, SCRIPT_HEX)

        assert [r.out_ref for r in requests] == [out_ref(0x04)]

    @pytest.mark.asyncio
    async def test_owner_filter_ignores_pointer_stake_part(self, ledger):
        ledger.add_utxo(make_utxo(0x01, SINGLE.address, Value(5_000_000), datum=pointer_owner_datum()))
        ledger.add_utxo(
            make_utxo(0x02, SINGLE.address, Value(5_000_000), datum=pointer_owner_datum(OTHER_KEY_HASH))
        )

        requests = await fetch_single_requests(ledger, SCRIPT_HEX, WALLET_ADDRESS)

        assert [r.out_ref for r in requests] == [out_ref(0x01)]

    @pytest.mark.asyncio
    async def test_empty_address(self, ledger):
        assert await fetch_single_requests(ledger, SCRIPT_HEX) == []
