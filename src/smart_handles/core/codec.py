"""
Datum codec.

Encodes smart handles datums to CBOR and decodes them back, distinguishing a
malformed datum from one of the wrong variant.
"""

from typing import Optional, Type, Union

import cbor2
import structlog

from pycardano import Datum, PlutusData, RawPlutusData, UTxO
from pycardano.serialization import default_encoder

from smart_handles.core.constants import MISSING_DATUM_ERROR_MSG
from smart_handles.core.errors import (
    InvalidDatumError,
    KindMismatchError,
    MissingDatumError,
    Result,
    SmartHandlesError,
)
from smart_handles.core.types import DATUM_TYPES, DatumKind, SmartHandleDatum

logger = structlog.get_logger(__name__)

DatumSource = Union[UTxO, Datum, str, None]

# CBOR tags of Plutus constructors 0-6 and 7-127
_COMPACT_TAG_BASE = 121
_EXTENDED_TAG_BASE = 1280
_GENERAL_TAG = 102


def _constructor_index(data: bytes) -> int:
    """Read the constructor index of a CBOR-encoded Plutus value."""
    try:
        raw = RawPlutusData.from_cbor(data)
    except Exception as e:
        raise InvalidDatumError(f"Malformed datum CBOR: {e}")

    tagged = raw.data
    tag = getattr(tagged, "tag", None)
    if not isinstance(tag, int):
        raise InvalidDatumError("Datum is not a Plutus constructor")

    if _COMPACT_TAG_BASE <= tag < _COMPACT_TAG_BASE + 7:
        return tag - _COMPACT_TAG_BASE
    if _EXTENDED_TAG_BASE <= tag < _EXTENDED_TAG_BASE + 121:
        return tag - _EXTENDED_TAG_BASE + 7
    if tag == _GENERAL_TAG:
        # Constr i fields == 102([i, fields])
        try:
            constr = tagged.value[0]
        except (TypeError, IndexError, KeyError):
            raise InvalidDatumError("Malformed general constructor")
        if isinstance(constr, bool) or not isinstance(constr, int):
            raise InvalidDatumError("Malformed general constructor")
        return constr
    raise InvalidDatumError(f"Unexpected CBOR tag {tag}")


def _datum_class(constr: int) -> Type[PlutusData]:
    cls = DATUM_TYPES.get(constr)
    if cls is None:
        raise InvalidDatumError(f"Unknown datum constructor {constr}")
    return cls


def _check_kind(actual: DatumKind, expected: Optional[DatumKind]) -> None:
    if expected is not None and actual != expected:
        raise KindMismatchError(
            f"Expected a {expected.value} datum, found a {actual.value} one"
        )


def encode_datum(datum: SmartHandleDatum, kind: Optional[DatumKind] = None) -> bytes:
    """
    Serialize a datum to CBOR.

    Raises:
        KindMismatchError: If ``kind`` is given and does not match the datum
    """
    _check_kind(datum.KIND, kind)
    return datum.to_cbor()


def _serialize_plutus(data: Datum) -> bytes:
    """CBOR of any Plutus value, including bare ints, bytes, maps and lists."""
    try:
        if isinstance(data, (PlutusData, RawPlutusData)):
            return data.to_cbor()
        return cbor2.dumps(data, default=default_encoder)
    except Exception as e:
        raise InvalidDatumError(f"Datum cannot be serialized: {e}")


def _to_cbor_bytes(data: Union[Datum, str]) -> bytes:
    """Hex and bytes are taken as CBOR; anything else as a Plutus value."""
    if isinstance(data, str):
        try:
            return bytes.fromhex(data)
        except ValueError as e:
            raise InvalidDatumError(f"Datum is not valid hex: {e}")
    if isinstance(data, bytes):
        return data
    return _serialize_plutus(data)


def decode_datum_or_raise(
    data: Union[Datum, str],
    kind: Optional[DatumKind] = None,
) -> SmartHandleDatum:
    """
    Decode a datum, raising on failure.

    Raises:
        InvalidDatumError: If the data is not a smart handles datum
        KindMismatchError: If it decodes to a variant other than ``kind``
    """
    cbor = _to_cbor_bytes(data)
    cls = _datum_class(_constructor_index(cbor))
    _check_kind(cls.KIND, kind)

    try:
        return cls.from_cbor(cbor)
    except Exception as e:
        raise InvalidDatumError(f"Failed to decode {cls.KIND.value} datum: {e}")


def decode_datum(
    data: Union[Datum, str],
    kind: Optional[DatumKind] = None,
) -> Result[SmartHandleDatum]:
    """
    Decode a datum without raising.

    Args:
        data: CBOR bytes, CBOR hex, or a Plutus value other than bytes
        kind: Variant the caller expects, if any

    Returns:
        The decoded datum, or an ``InvalidDatum`` / ``KindMismatch`` failure
    """
    try:
        return Result.ok(decode_datum_or_raise(data, kind))
    except SmartHandlesError as e:
        logger.debug("datum_decode_failed", kind=e.kind.value, error=e.message)
        return Result.fail(e)


def parse_safe_datum(
    source: DatumSource,
    kind: Optional[DatumKind] = None,
) -> Result[SmartHandleDatum]:
    """
    Decode the inline datum of a UTxO, or a datum given directly.

    A UTxO's inline datum may be any Plutus value, so bare bytes there are a
    Plutus byte string rather than CBOR. Outputs carrying only a datum hash
    are treated as having no datum.
    """
    if isinstance(source, UTxO):
        datum = source.output.datum
        if datum is None:
            return Result.fail(MissingDatumError(MISSING_DATUM_ERROR_MSG))
        try:
            datum = _serialize_plutus(datum)
        except InvalidDatumError as e:
            logger.debug("datum_decode_failed", kind=e.kind.value, error=e.message)
            return Result.fail(e)
        return decode_datum(datum, kind)

    if source is None:
        return Result.fail(MissingDatumError(MISSING_DATUM_ERROR_MSG))
    return decode_datum(source, kind)
