"""
Validator and address resolution for the single and batch scripts.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog

from pycardano import (
    Address,
    Network,
    PlutusV2Script,
    ScriptHash,
    VerificationKeyHash,
    plutus_script_hash,
)

logger = structlog.get_logger(__name__)

ScriptSource = Union[str, bytes, PlutusV2Script]

# CBOR major type 2 (byte string) initial bytes
_BYTES_MIN = 0x40
_BYTES_MAX = 0x5B


@dataclass
class ValidatorAndAddress:
    """A compiled validator together with its hash and ledger address."""
    script: PlutusV2Script
    script_hash: ScriptHash
    address: Address


@dataclass
class BatchValidators:
    """
    The batch script's two handles.

    ``spend`` guards the request outputs; ``stake`` is the same script used as
    a withdrawal validator, addressed by its reward address.
    """
    spend: ValidatorAndAddress
    stake: ValidatorAndAddress


def _unwrap_bytestring(data: bytes) -> Optional[bytes]:
    """Payload of a CBOR byte string spanning all of ``data``, else ``None``."""
    if not data or not _BYTES_MIN <= data[0] <= _BYTES_MAX:
        return None

    info = data[0] & 0x1F
    if info < 24:
        offset, length = 1, info
    else:
        size = 1 << (info - 24)
        offset = 1 + size
        if len(data) < offset:
            return None
        length = int.from_bytes(data[1:offset], "big")

    if offset + length != len(data):
        return None
    return data[offset:]


def load_script(source: ScriptSource) -> PlutusV2Script:
    """
    Load a Plutus V2 script from its compiled code.

    Accepts hex or raw bytes, either as found in a blueprint (one CBOR layer)
    or in a text envelope (two CBOR layers).
    """
    if isinstance(source, PlutusV2Script):
        return source
    data = bytes.fromhex(source) if isinstance(source, str) else bytes(source)

    inner = _unwrap_bytestring(data)
    if inner is not None and _unwrap_bytestring(inner) is not None:
        data = inner
    return PlutusV2Script(data)


def resolve_single_validator(
    script: ScriptSource,
    network: Network,
    stake_credential: Optional[Union[VerificationKeyHash, ScriptHash]] = None,
) -> ValidatorAndAddress:
    """
    Resolve the single script's spending address.

    Args:
        script: Compiled single validator
        network: Network the address is for
        stake_credential: Optional staking part of the address
    """
    validator = load_script(script)
    script_hash = plutus_script_hash(validator)
    address = Address(
        payment_part=script_hash,
        staking_part=stake_credential,
        network=network,
    )
    logger.debug("single_validator_resolved", script_hash=script_hash.payload.hex())
    return ValidatorAndAddress(validator, script_hash, address)


def resolve_batch_validators(script: ScriptSource, network: Network) -> BatchValidators:
    """
    Resolve both handles of the batch script.

    The spending address uses the script hash as payment and stake part, so
    every request output is tied to the withdrawal that validates the batch.
    """
    validator = load_script(script)
    script_hash = plutus_script_hash(validator)

    spend_address = Address(
        payment_part=script_hash,
        staking_part=script_hash,
        network=network,
    )
    reward_address = Address(staking_part=script_hash, network=network)

    logger.debug("batch_validators_resolved", script_hash=script_hash.payload.hex())
    return BatchValidators(
        spend=ValidatorAndAddress(validator, script_hash, spend_address),
        stake=ValidatorAndAddress(validator, script_hash, reward_address),
    )
