"""
Ledger Integration Layer.

Abstracts UTxO lookups and transaction assembly behind ``LedgerClient``.
"""

from smart_handles.node.interface import LedgerClient, NodeConnectionError, TxBuilder
from smart_handles.node.blockfrost import BlockfrostLedger

__all__ = [
    "LedgerClient",
    "TxBuilder",
    "NodeConnectionError",
    "BlockfrostLedger",
]
