"""
Smart Handles

Off-chain transaction construction for the smart handles protocol on Cardano.
Users lock funds at a script address with a datum describing an intended
swap (request); a router later consumes the output and pays it onward to a
destination (route); until then the owner may take the funds back (reclaim).
"""

__version__ = "0.1.0"

from smart_handles.core.errors import ErrorKind, Result, SmartHandlesError
from smart_handles.core.types import AdvancedDatum, DatumKind, SimpleDatum
from smart_handles.endpoints import (
    batch_reclaim,
    batch_request,
    batch_route,
    single_reclaim,
    single_request,
    single_route,
)

__all__ = [
    "ErrorKind",
    "Result",
    "SmartHandlesError",
    "DatumKind",
    "SimpleDatum",
    "AdvancedDatum",
    "single_request",
    "batch_request",
    "single_reclaim",
    "batch_reclaim",
    "single_route",
    "batch_route",
]
