"""
Smart Handles Data Types.

Contains the on-chain data structures understood by the smart handles
validators: addresses and credentials, the two datum variants, and the
redeemers of the single and batch scripts. Field order and constructor
indices are part of the on-chain contract and must not change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Union

from pycardano import Datum, PlutusData, RawPlutusData


class DatumKind(str, Enum):
    """Variants of the smart handles datum."""
    SIMPLE = "simple"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class AssetClass:
    """
    Identifies a token type on the ledger.

    The empty policy id with the empty asset name denotes lovelace.
    """
    policy_id: bytes = b""
    asset_name: bytes = b""

    @property
    def is_lovelace(self) -> bool:
        return not self.policy_id and not self.asset_name

    @property
    def unit(self) -> str:
        """Hex concatenation of policy id and asset name, ``lovelace`` for ada."""
        if self.is_lovelace:
            return "lovelace"
        return self.policy_id.hex() + self.asset_name.hex()

    @classmethod
    def from_unit(cls, unit: str) -> "AssetClass":
        if unit == "lovelace":
            return LOVELACE
        return cls(bytes.fromhex(unit[:56]), bytes.fromhex(unit[56:]))


LOVELACE = AssetClass()


# =============================================================================
# Credentials and Addresses
# =============================================================================

@dataclass
class PubKeyCredential(PlutusData):
    """Verification key hash credential (28 bytes)."""
    CONSTR_ID = 0
    key_hash: bytes


@dataclass
class ScriptCredential(PlutusData):
    """Script hash credential (28 bytes)."""
    CONSTR_ID = 1
    script_hash: bytes


Credential = Union[PubKeyCredential, ScriptCredential]


@dataclass
class InlineStakeCredential(PlutusData):
    """Stake credential given directly by a hash."""
    CONSTR_ID = 0
    credential: Credential


@dataclass
class PointerStakeCredential(PlutusData):
    """Stake credential given by a certificate pointer. Not supported."""
    CONSTR_ID = 1
    slot_number: int
    transaction_index: int
    certificate_index: int


@dataclass
class SomeStakeCredential(PlutusData):
    CONSTR_ID = 0
    stake_credential: Union[InlineStakeCredential, PointerStakeCredential]


@dataclass
class NoStakeCredential(PlutusData):
    CONSTR_ID = 1


@dataclass
class PlutusAddress(PlutusData):
    """Address as seen by on-chain code."""
    CONSTR_ID = 0
    payment_credential: Credential
    stake_credential: Union[SomeStakeCredential, NoStakeCredential]


@dataclass
class SomeAddress(PlutusData):
    CONSTR_ID = 0
    address: PlutusAddress


@dataclass
class NoAddress(PlutusData):
    CONSTR_ID = 1


# =============================================================================
# Datums
# =============================================================================

@dataclass
class SimpleDatum(PlutusData):
    """
    Minimal smart handles datum.

    The router fee is the protocol-wide ``ROUTER_FEE`` constant and only the
    owner may reclaim.
    """
    CONSTR_ID = 0
    KIND = DatumKind.SIMPLE
    owner: PlutusAddress


@dataclass
class AdvancedDatum(PlutusData):
    """
    Smart handles datum with per-request fees and opaque routing info.

    Attributes:
        owner: ``SomeAddress`` of the owner, or ``NoAddress`` when nobody can
            reclaim the UTxO
        router_fee: Lovelace deducted when routing
        reclaim_router_fee: Lovelace deducted when reclaiming
        extra_info: Arbitrary Plutus data only interpreted by routing hooks
    """
    CONSTR_ID = 1
    KIND = DatumKind.ADVANCED
    owner: Union[SomeAddress, NoAddress]
    router_fee: int
    reclaim_router_fee: int
    extra_info: Datum

    def __post_init__(self):
        super().__post_init__()
        # Decoding yields constructors as RawPlutusData; typed values must match
        if isinstance(self.extra_info, PlutusData):
            self.extra_info = RawPlutusData.from_cbor(self.extra_info.to_cbor())

    @property
    def has_owner(self) -> bool:
        return isinstance(self.owner, SomeAddress)


SmartHandleDatum = Union[SimpleDatum, AdvancedDatum]

DATUM_TYPES = {
    SimpleDatum.CONSTR_ID: SimpleDatum,
    AdvancedDatum.CONSTR_ID: AdvancedDatum,
}


# =============================================================================
# Redeemer Types
# =============================================================================

@dataclass
class RouteRedeemer(PlutusData):
    """Single validator: route the UTxO at ``input_index`` to ``output_index``."""
    CONSTR_ID = 0
    input_index: int
    output_index: int


@dataclass
class ReclaimRedeemer(PlutusData):
    """Single validator: owner reclaims a simple UTxO."""
    CONSTR_ID = 1


@dataclass
class AdvancedReclaimRedeemer(PlutusData):
    """Single validator: reclaim an advanced UTxO to its owner."""
    CONSTR_ID = 2
    input_index: int
    output_index: int


@dataclass
class BatchRouteRedeemer(PlutusData):
    """Batch spending validator: defer routing checks to the withdrawal."""
    CONSTR_ID = 0


@dataclass
class BatchReclaimRedeemer(PlutusData):
    """Batch spending validator: reclaim."""
    CONSTR_ID = 1


@dataclass
class BatchWithdrawRedeemer(PlutusData):
    """
    Batch withdrawal validator redeemer.

    ``input_indices`` are the positions of the spent script inputs among all
    transaction inputs; ``output_indices`` are the positions of their outputs.
    """
    CONSTR_ID = 0
    input_indices: List[int]
    output_indices: List[int]
