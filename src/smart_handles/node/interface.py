"""
Abstract interface for ledger access and transaction assembly.

The endpoints only talk to the ledger through these two contracts, so any
provider (or an in-memory fake) can back them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from pycardano import (
    Address,
    Datum,
    Network,
    PlutusData,
    PlutusV2Script,
    Transaction,
    TransactionInput,
    UTxO,
    Value,
)


class TxBuilder(ABC):
    """
    Chainable transaction under construction.

    Every mutating method returns the builder itself. Nothing is checked
    until ``finalize``.
    """

    @abstractmethod
    def spend(
        self,
        utxos: Sequence[UTxO],
        redeemer: Optional[PlutusData] = None,
    ) -> "TxBuilder":
        """
        Add inputs to the transaction.

        Args:
            utxos: UTxOs to consume
            redeemer: Redeemer for script-locked inputs, ``None`` for wallet inputs
        """
        pass

    @abstractmethod
    def pay_to_address(
        self,
        address: Address,
        value: Value,
        datum: Optional[Datum] = None,
        inline: bool = True,
    ) -> "TxBuilder":
        """
        Add an output.

        Args:
            address: Recipient
            value: Value of the output
            datum: Optional datum, attached inline unless ``inline`` is False
        """
        pass

    @abstractmethod
    def attach_validator(self, script: PlutusV2Script) -> "TxBuilder":
        pass

    @abstractmethod
    def require_signer(self, key_hash: bytes) -> "TxBuilder":
        pass

    @abstractmethod
    def withdraw(
        self,
        reward_address: Address,
        amount: int,
        redeemer: PlutusData,
    ) -> "TxBuilder":
        """Withdraw ``amount`` from a script reward address."""
        pass

    @abstractmethod
    async def finalize(self) -> Transaction:
        """
        Balance and build the transaction.

        Raises:
            Exception: Any provider-specific build failure
        """
        pass


class LedgerClient(ABC):
    """Read access to the ledger and the calling wallet."""

    @property
    @abstractmethod
    def network(self) -> Network:
        pass

    @abstractmethod
    async def get_utxos_by_refs(self, refs: Sequence[TransactionInput]) -> List[UTxO]:
        """
        Look up unspent outputs by reference.

        Returns:
            The UTxOs that were found; unknown or spent references are omitted
        """
        pass

    @abstractmethod
    async def get_utxos_at_address(self, address: Address) -> List[UTxO]:
        pass

    @abstractmethod
    async def get_wallet_address(self) -> Address:
        pass

    @abstractmethod
    async def get_wallet_utxos(self) -> List[UTxO]:
        pass

    @abstractmethod
    def new_tx(self) -> TxBuilder:
        """Start an empty transaction paid for by the wallet."""
        pass


class NodeConnectionError(Exception):
    """Raised when connection to the provider fails."""
    pass
