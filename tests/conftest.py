"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import List, Optional, Sequence

import pytest
from pycardano import (
    Address,
    Datum,
    Network,
    PlutusData,
    PlutusV2Script,
    TransactionId,
    TransactionInput,
    TransactionOutput,
    UTxO,
    Value,
    VerificationKeyHash,
)

from smart_handles.config import NetworkType, SmartHandlesConfig
from smart_handles.core.address import address_to_plutus
from smart_handles.core.types import (
    AdvancedDatum,
    NoAddress,
    PlutusAddress,
    PointerStakeCredential,
    PubKeyCredential,
    SimpleDatum,
    SomeAddress,
    SomeStakeCredential,
)
from smart_handles.core.validators import resolve_batch_validators, resolve_single_validator
from smart_handles.node.interface import LedgerClient, TxBuilder


# ============================================================================
# Test Data
# ============================================================================

# Always-succeeding Plutus V2 script, as found in a text envelope (two CBOR layers)
SCRIPT_HEX = "4e4d01000033222220051200120011"

WALLET_KEY_HASH = bytes.fromhex("aa" * 28)
OTHER_KEY_HASH = bytes.fromhex("bb" * 28)
STAKE_KEY_HASH = bytes.fromhex("cc" * 28)

WALLET_ADDRESS = Address(VerificationKeyHash(WALLET_KEY_HASH), network=Network.TESTNET)
OTHER_ADDRESS = Address(
    VerificationKeyHash(OTHER_KEY_HASH),
    VerificationKeyHash(STAKE_KEY_HASH),
    network=Network.TESTNET,
)
ROUTE_ADDRESS = Address(VerificationKeyHash(bytes.fromhex("dd" * 28)), network=Network.TESTNET)

SINGLE = resolve_single_validator(SCRIPT_HEX, Network.TESTNET)
BATCH = resolve_batch_validators(SCRIPT_HEX, Network.TESTNET)


def generate_test_tx_hash(index: int = 0) -> str:
    """Generate a deterministic test transaction hash."""
    return f"{index:02x}" * 32


def out_ref(index: int, output_index: int = 0) -> TransactionInput:
    return TransactionInput(
        TransactionId.from_primitive(generate_test_tx_hash(index)),
        output_index,
    )


def make_utxo(
    index: int,
    address: Address,
    value: Value,
    datum: Optional[Datum] = None,
    output_index: int = 0,
    script: Optional[PlutusV2Script] = None,
) -> UTxO:
    """Create a UTxO with an optional inline datum and reference script."""
    output = TransactionOutput(address, value, datum=datum, script=script)
    return UTxO(out_ref(index, output_index), output)


def simple_datum(owner: Address = WALLET_ADDRESS) -> SimpleDatum:
    return SimpleDatum(owner=address_to_plutus(owner))


def advanced_datum(
    owner: Optional[Address] = WALLET_ADDRESS,
    router_fee: int = 1_500_000,
    reclaim_router_fee: int = 500_000,
    extra_info: Datum = 42,
) -> AdvancedDatum:
    return AdvancedDatum(
        owner=SomeAddress(address_to_plutus(owner)) if owner else NoAddress(),
        router_fee=router_fee,
        reclaim_router_fee=reclaim_router_fee,
        extra_info=extra_info,
    )


def pointer_owner_datum(key_hash: bytes = WALLET_KEY_HASH) -> SimpleDatum:
    """Simple datum whose owner carries a pointer stake credential."""
    return SimpleDatum(
        owner=PlutusAddress(
            PubKeyCredential(key_hash),
            SomeStakeCredential(PointerStakeCredential(1, 2, 3)),
        )
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> SmartHandlesConfig:
    """Create a test configuration."""
    return SmartHandlesConfig(
        network=NetworkType.PREPROD,
        blockfrost_project_id="test_project_id",
        script_cbor=SCRIPT_HEX,
        log_level="DEBUG",
    )


# ============================================================================
# Mock Ledger
# ============================================================================

class MockTxBuilder(TxBuilder):
    """Records every instruction; ``finalize`` returns the builder itself."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.spends: List[tuple] = []
        self.outputs: List[tuple] = []
        self.validators: List[PlutusV2Script] = []
        self.signers: List[bytes] = []
        self.withdrawals: List[tuple] = []
        self.finalized = False

    def spend(self, utxos: Sequence[UTxO], redeemer: Optional[PlutusData] = None):
        self.spends.append((list(utxos), redeemer))
        return self

    def pay_to_address(self, address, value, datum=None, inline=True):
        self.outputs.append((address, value, datum, inline))
        return self

    def attach_validator(self, script):
        self.validators.append(script)
        return self

    def require_signer(self, key_hash):
        self.signers.append(key_hash)
        return self

    def withdraw(self, reward_address, amount, redeemer):
        self.withdrawals.append((reward_address, amount, redeemer))
        return self

    async def finalize(self):
        if self.fail_with is not None:
            raise self.fail_with
        self.finalized = True
        return self

    @property
    def spent_utxos(self) -> List[UTxO]:
        return [utxo for utxos, _ in self.spends for utxo in utxos]


class MockLedgerClient(LedgerClient):
    """In-memory ledger for testing."""

    def __init__(
        self,
        wallet_address: Address = WALLET_ADDRESS,
        network: Network = Network.TESTNET,
    ):
        self.wallet_address = wallet_address
        self._network = network
        self.utxos: List[UTxO] = []
        self.wallet_utxos: List[UTxO] = []
        self.builders: List[MockTxBuilder] = []
        self.build_error: Optional[Exception] = None

    @property
    def network(self) -> Network:
        return self._network

    async def get_utxos_by_refs(self, refs):
        wanted = {(str(r.transaction_id), r.index) for r in refs}
        return [
            u for u in self.utxos
            if (str(u.input.transaction_id), u.input.index) in wanted
        ]

    async def get_utxos_at_address(self, address):
        return [u for u in self.utxos if u.output.address == address]

    async def get_wallet_address(self):
        return self.wallet_address

    async def get_wallet_utxos(self):
        return list(self.wallet_utxos)

    def new_tx(self) -> MockTxBuilder:
        builder = MockTxBuilder(self.build_error)
        self.builders.append(builder)
        return builder

    def add_utxo(self, utxo: UTxO) -> None:
        """Add a UTxO to the mock."""
        self.utxos.append(utxo)


@pytest.fixture
def ledger() -> MockLedgerClient:
    """A ledger whose wallet holds one 10 ADA UTxO."""
    ledger = MockLedgerClient()
    ledger.wallet_utxos.append(make_utxo(0xAA, WALLET_ADDRESS, Value(10_000_000)))
    return ledger
