"""
Core protocol components.

On-chain data types, the datum codec, value algebra, UTxO ordering and
validator resolution shared by all endpoints.
"""

from smart_handles.core.codec import decode_datum, encode_datum, parse_safe_datum
from smart_handles.core.constants import LOVELACE_MARGIN, ROUTER_FEE
from smart_handles.core.errors import ErrorKind, Result, SmartHandlesError
from smart_handles.core.types import AdvancedDatum, DatumKind, SimpleDatum

__all__ = [
    "decode_datum",
    "encode_datum",
    "parse_safe_datum",
    "LOVELACE_MARGIN",
    "ROUTER_FEE",
    "ErrorKind",
    "Result",
    "SmartHandlesError",
    "DatumKind",
    "SimpleDatum",
    "AdvancedDatum",
]
