"""
Test suite for the datum codec and on-chain encodings.
"""

import pytest
from pycardano import RawPlutusData, Value
from pycardano.serialization import IndefiniteList

from smart_handles.core.codec import decode_datum, encode_datum, parse_safe_datum
from smart_handles.core.errors import ErrorKind, KindMismatchError
from smart_handles.core.types import (
    AdvancedDatum,
    AdvancedReclaimRedeemer,
    BatchReclaimRedeemer,
    BatchRouteRedeemer,
    BatchWithdrawRedeemer,
    DatumKind,
    ReclaimRedeemer,
    RouteRedeemer,
    SimpleDatum,
)

from conftest import OTHER_ADDRESS, SINGLE, WALLET_ADDRESS, advanced_datum, make_utxo, simple_datum


# ============================================================================
# Test Datum Round Trip
# ============================================================================

class TestDatumRoundTrip:
    """Tests for encode/decode of both datum variants."""

    def test_simple_round_trip(self):
        datum = simple_datum(OTHER_ADDRESS)

        result = decode_datum(encode_datum(datum))

        assert result.is_ok
        assert isinstance(result.value, SimpleDatum)
        assert result.value == datum
        assert result.value.to_cbor() == datum.to_cbor()

    @pytest.mark.parametrize("extra_info", [42, b"swap to token X", {1: b"x"}, RouteRedeemer(1, 2)])
    def test_advanced_round_trip(self, extra_info):
        datum = advanced_datum(extra_info=extra_info)

        result = decode_datum(encode_datum(datum), DatumKind.ADVANCED)

        assert result.is_ok
        assert isinstance(result.value, AdvancedDatum)
        assert result.value.router_fee == datum.router_fee
        assert result.value.reclaim_router_fee == datum.reclaim_router_fee
        assert result.value.extra_info == datum.extra_info
        assert result.value.owner == datum.owner
        assert result.value == datum
        assert result.value.to_cbor() == datum.to_cbor()

    def test_constructor_extra_info_held_as_raw_data(self):
        datum = advanced_datum(extra_info=RouteRedeemer(1, 2))

        assert isinstance(datum.extra_info, RawPlutusData)
        assert datum.extra_info.to_cbor() == RouteRedeemer(1, 2).to_cbor()

    def test_advanced_without_owner(self):
        datum = advanced_datum(owner=None)

        result = decode_datum(encode_datum(datum))

        assert result.is_ok
        assert result.value.has_owner is False

    def test_decode_accepts_hex(self):
        datum = simple_datum()

        result = decode_datum(encode_datum(datum).hex())

        assert result.value == datum

    def test_constructor_tags(self):
        assert encode_datum(simple_datum())[:2] == bytes.fromhex("d879")
        assert encode_datum(advanced_datum())[:2] == bytes.fromhex("d87a")


# ============================================================================
# Test Decode Failures
# ============================================================================

class TestDecodeFailures:
    """Tests for malformed and mismatching datums."""

    def test_kind_mismatch_on_decode(self):
        result = decode_datum(encode_datum(simple_datum()), DatumKind.ADVANCED)

        assert result.kind == ErrorKind.KIND_MISMATCH

    def test_kind_mismatch_on_encode(self):
        with pytest.raises(KindMismatchError):
            encode_datum(advanced_datum(), DatumKind.SIMPLE)

    def test_garbage_is_invalid(self):
        assert decode_datum(b"\xff\x00\x13").kind == ErrorKind.INVALID_DATUM

    def test_integer_is_invalid(self):
        assert decode_datum(bytes.fromhex("182a")).kind == ErrorKind.INVALID_DATUM

    def test_unknown_constructor_is_invalid(self):
        # Constr 2 []
        assert decode_datum(bytes.fromhex("d87b80")).kind == ErrorKind.INVALID_DATUM

    def test_wrong_shape_is_invalid(self):
        # Constr 0 [42]: right tag, owner is not an address
        assert decode_datum(bytes.fromhex("d8799f182aff")).kind == ErrorKind.INVALID_DATUM

    @pytest.mark.parametrize("cbor_hex", ["d86680", "d866a0", "d866828080", "d8668241ff80"])
    def test_malformed_general_constructor_is_invalid(self, cbor_hex):
        # tag 102 must wrap [constructor index, fields]
        assert decode_datum(bytes.fromhex(cbor_hex)).kind == ErrorKind.INVALID_DATUM


# ============================================================================
# Test Safe Parse
# ============================================================================

class TestParseSafeDatum:
    """Tests for reading datums off UTxOs."""

    def test_missing_datum(self):
        utxo = make_utxo(1, SINGLE.address, Value(5_000_000))

        assert parse_safe_datum(utxo).kind == ErrorKind.MISSING_DATUM

    def test_none_is_missing(self):
        assert parse_safe_datum(None).kind == ErrorKind.MISSING_DATUM

    def test_inline_raw_datum(self):
        datum = simple_datum(WALLET_ADDRESS)
        raw = RawPlutusData.from_cbor(datum.to_cbor())
        utxo = make_utxo(1, SINGLE.address, Value(5_000_000), datum=raw)

        result = parse_safe_datum(utxo, DatumKind.SIMPLE)

        assert result.value == datum

    @pytest.mark.parametrize("inline", [42, {1: 2}, IndefiniteList([1]), b"\xd8\x79\x80"])
    def test_inline_non_constructor_is_invalid(self, inline):
        utxo = make_utxo(1, SINGLE.address, Value(5_000_000), datum=inline)

        assert parse_safe_datum(utxo).kind == ErrorKind.INVALID_DATUM

    def test_unwrap_raises_error(self):
        with pytest.raises(KindMismatchError):
            parse_safe_datum(advanced_datum(), DatumKind.SIMPLE).unwrap()


# ============================================================================
# Test Redeemer Encodings
# ============================================================================

class TestRedeemers:
    """Redeemer encodings must match the validators bit for bit."""

    def test_single_redeemers(self):
        assert RouteRedeemer(3, 0).to_cbor() == bytes.fromhex("d8799f0300ff")
        assert ReclaimRedeemer().to_cbor() == bytes.fromhex("d87a80")
        assert AdvancedReclaimRedeemer(1, 0).to_cbor() == bytes.fromhex("d87b9f0100ff")

    def test_batch_redeemers(self):
        assert BatchRouteRedeemer().to_cbor() == bytes.fromhex("d87980")
        assert BatchReclaimRedeemer().to_cbor() == bytes.fromhex("d87a80")

    def test_withdraw_redeemer(self):
        redeemer = BatchWithdrawRedeemer([2, 0], [0, 1])

        raw = RawPlutusData.from_cbor(redeemer.to_cbor()).data

        assert raw.tag == 121
        assert list(raw.value[0]) == [2, 0]
        assert list(raw.value[1]) == [0, 1]
