"""
Caller-facing configuration of the Request, Route and Reclaim endpoints.

Destination-specific behaviour is injected through two hooks, both plain
callables that may be synchronous or return an awaitable:

- ``output_datum_maker(input_value, input_datum)`` returns the datum of the
  routed (or reclaimed) output, either bare or wrapped in ``OutputDatum``
- ``additional_action(tx_builder, utxo)`` extends the transaction and returns
  the builder

Hooks report failure by raising.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from pycardano import Address, Datum, PlutusData, TransactionInput, UTxO, Value

from smart_handles.core.types import DatumKind, SmartHandleDatum
from smart_handles.core.validators import ScriptSource
from smart_handles.node.interface import TxBuilder


@dataclass
class OutputDatum:
    """Datum attached to a produced output, inline unless ``as_hash`` is set."""
    datum: Datum
    as_hash: bool = False


OutputDatumMaker = Callable[
    [Value, SmartHandleDatum],
    Union[OutputDatum, Datum, Awaitable[Union[OutputDatum, Datum]]],
]
AdditionalAction = Callable[[TxBuilder, UTxO], Union[TxBuilder, Awaitable[TxBuilder]]]


async def call_hook(hook: Callable, *args) -> Any:
    """Invoke a sync or async hook and return its result."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def as_output_datum(value: Union[OutputDatum, Datum]) -> OutputDatum:
    if isinstance(value, OutputDatum):
        return value
    return OutputDatum(value)


# =============================================================================
# Request
# =============================================================================

@dataclass
class SimpleRouteRequest:
    """
    Lock ``value_to_lock`` under a simple datum.

    ``owner`` defaults to the calling wallet's address.
    """
    value_to_lock: Value
    owner: Optional[Address] = None

    @property
    def kind(self) -> DatumKind:
        return DatumKind.SIMPLE


@dataclass
class AdvancedRouteRequest:
    """Lock ``value_to_lock`` under an advanced datum. ``owner=None`` forbids reclaims."""
    value_to_lock: Value
    owner: Optional[Address]
    router_fee: int
    reclaim_router_fee: int
    extra_info: Datum

    @property
    def kind(self) -> DatumKind:
        return DatumKind.ADVANCED


RouteRequest = Union[SimpleRouteRequest, AdvancedRouteRequest]


@dataclass
class SingleRequestConfig:
    script_cbor: ScriptSource
    route_request: RouteRequest
    additional_required_lovelaces: int = 0


@dataclass
class BatchRequestConfig:
    script_cbor: ScriptSource
    route_requests: List[RouteRequest]
    additional_required_lovelaces: int = 0


# =============================================================================
# Route and Reclaim
# =============================================================================

@dataclass
class RouteConfig:
    """
    How to route one request UTxO.

    Attributes:
        out_ref: The request UTxO this config applies to
        kind: Datum variant the UTxO is expected to carry
        output_datum_maker: Builds the datum of the routed output
        additional_action: Optional extra transaction logic for this UTxO
    """
    out_ref: TransactionInput
    kind: DatumKind
    output_datum_maker: OutputDatumMaker
    additional_action: Optional[AdditionalAction] = None


@dataclass
class ReclaimConfig:
    """
    How to reclaim one request UTxO.

    Simple UTxOs need no hooks; advanced ones require ``output_datum_maker``.
    """
    out_ref: TransactionInput
    kind: DatumKind = DatumKind.SIMPLE
    output_datum_maker: Optional[OutputDatumMaker] = None
    additional_action: Optional[AdditionalAction] = None

    @classmethod
    def simple(cls, out_ref: TransactionInput) -> "ReclaimConfig":
        return cls(out_ref=out_ref, kind=DatumKind.SIMPLE)


@dataclass
class SingleRouteConfig:
    script_cbor: ScriptSource
    request_out_ref: TransactionInput
    route_address: Address
    route: RouteConfig


@dataclass
class BatchRouteConfig:
    """Routes are paired positionally with ``request_out_refs``."""
    script_cbor: ScriptSource
    request_out_refs: List[TransactionInput]
    route_address: Address
    routes: List[RouteConfig]


@dataclass
class SingleReclaimConfig:
    script_cbor: ScriptSource
    request_out_ref: TransactionInput
    reclaim: Optional[ReclaimConfig] = None


@dataclass
class BatchReclaimConfig:
    """UTxOs without a matching entry in ``reclaims`` are reclaimed as simple."""
    script_cbor: ScriptSource
    request_out_refs: List[TransactionInput]
    reclaims: List[ReclaimConfig] = field(default_factory=list)


# =============================================================================
# Derived values
# =============================================================================

@dataclass
class InputUTxOAndOutputInfo:
    """
    A validated script input and the output it must produce.

    ``make_redeemer`` receives the input's canonical index. ``output_address``
    is ``None`` for simple reclaims, which produce no dedicated output.
    """
    utxo: UTxO
    datum: SmartHandleDatum
    make_redeemer: Callable[[int], PlutusData]
    output_address: Optional[Address] = None
    output_value: Optional[Value] = None
    output_datum: Optional[OutputDatum] = None
    required_signer: Optional[bytes] = None
    additional_action: Optional[AdditionalAction] = None


@dataclass
class ReadableUTxO:
    """A request UTxO with its decoded datum."""
    out_ref: TransactionInput
    datum: SmartHandleDatum
    value: Value
