"""
Wallet signer.

Loads the wallet's payment key and adds its witness to built transactions.
Only the CLI and the Blockfrost adapter use it; endpoints return unsigned
transactions.
"""

from pathlib import Path
from typing import Optional

import structlog

from pycardano import (
    Address,
    Network,
    PaymentSigningKey,
    PaymentVerificationKey,
    Transaction,
    TransactionWitnessSet,
    VerificationKeyWitness,
)

from smart_handles.config import SmartHandlesConfig, get_config

logger = structlog.get_logger(__name__)


class WalletSigner:
    """
    Holds the wallet's signing key.

    Supports loading keys from:
    - File path (standard Cardano signing key format)
    - CBOR-encoded key (for environment variable configuration)
    """

    def __init__(self, config: Optional[SmartHandlesConfig] = None):
        self.config = config or get_config()
        self._signing_key: Optional[PaymentSigningKey] = None
        self._verification_key: Optional[PaymentVerificationKey] = None
        self._address: Optional[Address] = None

    def load_key_from_file(self, key_path: str) -> None:
        """
        Load signing key from a file.

        Args:
            key_path: Path to the signing key file
        """
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Signing key file not found: {key_path}")

        self._set_signing_key(PaymentSigningKey.load(str(path)))
        logger.info("signing_key_loaded", path=key_path, address=str(self._address)[:30] + "...")

    def load_key_from_cbor(self, cbor_hex: str) -> None:
        """
        Load signing key from CBOR hex string.

        Args:
            cbor_hex: CBOR-encoded signing key in hex
        """
        self._set_signing_key(PaymentSigningKey.from_cbor(cbor_hex))
        logger.info("signing_key_loaded_from_cbor", address=str(self._address)[:30] + "...")

    def load_from_config(self) -> None:
        """Load signing key from configuration."""
        if self.config.wallet_signing_key_path:
            self.load_key_from_file(self.config.wallet_signing_key_path)
        elif self.config.wallet_signing_key_cbor:
            self.load_key_from_cbor(self.config.wallet_signing_key_cbor)
        else:
            raise ValueError("No signing key configured")

    def _set_signing_key(self, signing_key: PaymentSigningKey) -> None:
        self._signing_key = signing_key
        self._verification_key = PaymentVerificationKey.from_signing_key(signing_key)
        network: Network = self.config.pycardano_network
        self._address = Address(self._verification_key.hash(), network=network)

    @property
    def address(self) -> Optional[Address]:
        """Enterprise address of the wallet key."""
        return self._address

    @property
    def payment_key_hash(self) -> Optional[bytes]:
        if not self._verification_key:
            return None
        return self._verification_key.hash().payload

    @property
    def is_loaded(self) -> bool:
        """Check if a signing key is loaded."""
        return self._signing_key is not None

    def sign_transaction(self, tx: Transaction) -> Transaction:
        """
        Add the wallet's witness to a built transaction.

        Existing witnesses, scripts and redeemers are kept.
        """
        if not self._signing_key:
            raise RuntimeError("No signing key loaded")

        tx_hash = tx.transaction_body.hash()
        vkey_witness = VerificationKeyWitness(
            self._verification_key,
            self._signing_key.sign(tx_hash),
        )

        existing = tx.transaction_witness_set or TransactionWitnessSet()
        witness_set = TransactionWitnessSet(
            vkey_witnesses=list(existing.vkey_witnesses or []) + [vkey_witness],
            native_scripts=existing.native_scripts,
            bootstrap_witness=existing.bootstrap_witness,
            plutus_v1_script=existing.plutus_v1_script,
            plutus_data=existing.plutus_data,
            redeemer=existing.redeemer,
            plutus_v2_script=existing.plutus_v2_script,
        )

        logger.debug("transaction_signed", tx_hash=tx_hash.hex()[:16] + "...")
        return Transaction(tx.transaction_body, witness_set, auxiliary_data=tx.auxiliary_data)
