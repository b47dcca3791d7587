"""
Listing of pending requests sitting at the smart handles script addresses.
"""

from typing import List, Optional

import structlog

from pycardano import Address

from smart_handles.core.address import datum_owner_payment_hash, payment_key_hash
from smart_handles.core.codec import parse_safe_datum
from smart_handles.core.models import ReadableUTxO
from smart_handles.core.utxos import print_out_ref, sort_out_refs
from smart_handles.core.validators import (
    ScriptSource,
    resolve_batch_validators,
    resolve_single_validator,
)
from smart_handles.node.interface import LedgerClient

logger = structlog.get_logger(__name__)


async def _fetch_requests(
    ledger: LedgerClient,
    script_address: Address,
    owner: Optional[Address],
) -> List[ReadableUTxO]:
    utxos = await ledger.get_utxos_at_address(script_address)
    owner_hash = payment_key_hash(owner) if owner is not None else None

    requests = []
    for utxo in sort_out_refs(utxos):
        result = parse_safe_datum(utxo)
        if not result.is_ok:
            logger.debug(
                "request_skipped",
                out_ref=print_out_ref(utxo),
                reason=result.error.message,
            )
            continue

        if owner_hash is not None and datum_owner_payment_hash(result.value) != owner_hash:
            continue

        requests.append(ReadableUTxO(utxo.input, result.value, utxo.output.amount))

    logger.debug("requests_fetched", address=str(script_address), count=len(requests))
    return requests


async def fetch_single_requests(
    ledger: LedgerClient,
    script: ScriptSource,
    owner: Optional[Address] = None,
) -> List[ReadableUTxO]:
    """
    List requests locked at the single script address.

    Args:
        ledger: Ledger client to query
        script: Compiled single validator
        owner: Only return requests whose owner has this payment credential
    """
    validator = resolve_single_validator(script, ledger.network)
    return await _fetch_requests(ledger, validator.address, owner)


async def fetch_batch_requests(
    ledger: LedgerClient,
    script: ScriptSource,
    owner: Optional[Address] = None,
) -> List[ReadableUTxO]:
    """List requests locked at the batch script's spending address."""
    validators = resolve_batch_validators(script, ledger.network)
    return await _fetch_requests(ledger, validators.spend.address, owner)
