"""
Transaction module.

Handles transaction assembly and signing.
"""

from smart_handles.tx.builder import PyCardanoTxBuilder, TransactionBuildError
from smart_handles.tx.signer import WalletSigner

__all__ = [
    "PyCardanoTxBuilder",
    "TransactionBuildError",
    "WalletSigner",
]
