"""
Transaction builder backed by pycardano.

Records the endpoint's instructions and replays them on a pycardano
``TransactionBuilder`` when finalized, so validators may be attached after
the inputs they unlock.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from pycardano import (
    Address,
    ChainContext,
    Datum,
    PlutusData,
    PlutusV2Script,
    Redeemer,
    ScriptHash,
    Transaction,
    TransactionBuilder as PyCardanoBuilder,
    TransactionOutput,
    UTxO,
    Value,
    VerificationKeyHash,
    Withdrawals,
    datum_hash,
    plutus_script_hash,
)

from smart_handles.node.interface import TxBuilder

logger = structlog.get_logger(__name__)


class TransactionBuildError(Exception):
    """Raised when transaction construction fails."""
    pass


class PyCardanoTxBuilder(TxBuilder):
    """
    ``TxBuilder`` over pycardano's balancing transaction builder.

    When the transaction spends script inputs, only the explicitly spent
    UTxOs are used: letting the balancer add wallet inputs would shift the
    input indices the redeemers point at. Otherwise the wallet address is
    offered to the balancer as a source of funds.
    """

    def __init__(self, context: ChainContext, wallet_address: Address):
        self.context = context
        self.wallet_address = wallet_address
        self._script_spends: List[Tuple[UTxO, PlutusData]] = []
        self._plain_spends: List[UTxO] = []
        self._outputs: List[TransactionOutput] = []
        self._hashed_datums: List[Datum] = []
        self._scripts: Dict[ScriptHash, PlutusV2Script] = {}
        self._signers: List[bytes] = []
        self._withdrawals: List[Tuple[Address, int, PlutusData]] = []

    def spend(
        self,
        utxos: Sequence[UTxO],
        redeemer: Optional[PlutusData] = None,
    ) -> "PyCardanoTxBuilder":
        for utxo in utxos:
            if redeemer is None:
                self._plain_spends.append(utxo)
            else:
                self._script_spends.append((utxo, redeemer))
        return self

    def pay_to_address(
        self,
        address: Address,
        value: Value,
        datum: Optional[Datum] = None,
        inline: bool = True,
    ) -> "PyCardanoTxBuilder":
        if datum is None:
            output = TransactionOutput(address, value)
        elif inline:
            output = TransactionOutput(address, value, datum=datum)
        else:
            output = TransactionOutput(address, value, datum_hash=datum_hash(datum))
            self._hashed_datums.append(datum)
        self._outputs.append(output)
        return self

    def attach_validator(self, script: PlutusV2Script) -> "PyCardanoTxBuilder":
        self._scripts[plutus_script_hash(script)] = script
        return self

    def require_signer(self, key_hash: bytes) -> "PyCardanoTxBuilder":
        if key_hash not in self._signers:
            self._signers.append(key_hash)
        return self

    def withdraw(
        self,
        reward_address: Address,
        amount: int,
        redeemer: PlutusData,
    ) -> "PyCardanoTxBuilder":
        self._withdrawals.append((reward_address, amount, redeemer))
        return self

    def _script_for(self, script_hash: ScriptHash) -> PlutusV2Script:
        script = self._scripts.get(script_hash)
        if script is None:
            raise TransactionBuildError(
                f"No validator attached for script hash {script_hash.payload.hex()}"
            )
        return script

    async def finalize(self) -> Transaction:
        """
        Balance and build the unsigned transaction.

        Raises:
            TransactionBuildError: If pycardano cannot build it
        """
        builder = PyCardanoBuilder(self.context)

        try:
            for utxo, redeemer in self._script_spends:
                builder.add_script_input(
                    utxo,
                    script=self._script_for(utxo.output.address.payment_part),
                    redeemer=Redeemer(redeemer),
                )
            for utxo in self._plain_spends:
                builder.add_input(utxo)
            if not self._script_spends:
                builder.add_input_address(self.wallet_address)

            for output in self._outputs:
                builder.add_output(output)
            for datum in self._hashed_datums:
                builder.datums[datum_hash(datum)] = datum

            if self._withdrawals:
                builder.withdrawals = Withdrawals(
                    {address.to_primitive(): amount for address, amount, _ in self._withdrawals}
                )
                for address, _, redeemer in self._withdrawals:
                    builder.add_withdrawal_script(
                        self._script_for(address.staking_part),
                        redeemer=Redeemer(redeemer),
                    )

            if self._signers:
                builder.required_signers = [VerificationKeyHash(h) for h in self._signers]

            body = builder.build(change_address=self.wallet_address)
            witness_set = builder.build_witness_set()

        except TransactionBuildError:
            raise
        except Exception as e:
            logger.error("transaction_build_failed", error=str(e))
            raise TransactionBuildError(f"Failed to build transaction: {e}")

        logger.info(
            "transaction_built",
            tx_hash=body.hash().hex()[:16] + "...",
            inputs=len(body.inputs),
            outputs=len(body.outputs),
        )
        return Transaction(body, witness_set)
