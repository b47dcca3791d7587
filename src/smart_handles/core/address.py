"""
Conversion between ledger addresses and their on-chain data representation.
"""

from typing import Optional, Union

from pycardano import (
    Address,
    Network,
    PointerAddress,
    ScriptHash,
    VerificationKeyHash,
)

from smart_handles.core.errors import InvalidDatumError
from smart_handles.core.types import (
    AdvancedDatum,
    Credential,
    InlineStakeCredential,
    NoAddress,
    NoStakeCredential,
    PlutusAddress,
    PointerStakeCredential,
    PubKeyCredential,
    ScriptCredential,
    SimpleDatum,
    SomeAddress,
    SomeStakeCredential,
)

PaymentPart = Union[VerificationKeyHash, ScriptHash]


def _credential_to_plutus(part: PaymentPart) -> Credential:
    if isinstance(part, VerificationKeyHash):
        return PubKeyCredential(part.payload)
    if isinstance(part, ScriptHash):
        return ScriptCredential(part.payload)
    raise InvalidDatumError(f"Unsupported credential type: {type(part).__name__}")


def _credential_from_plutus(credential: Credential) -> PaymentPart:
    if isinstance(credential, PubKeyCredential):
        return VerificationKeyHash(credential.key_hash)
    return ScriptHash(credential.script_hash)


def address_to_plutus(address: Address) -> PlutusAddress:
    """
    Encode a ledger address for use inside a datum.

    Raises:
        InvalidDatumError: If the address has no payment part or uses a
            pointer stake credential
    """
    if address.payment_part is None:
        raise InvalidDatumError("Not a valid payment address.")

    staking_part = address.staking_part
    if isinstance(staking_part, PointerAddress):
        raise InvalidDatumError("Pointer stake credentials are not supported.")

    if staking_part is None:
        stake_credential = NoStakeCredential()
    else:
        stake_credential = SomeStakeCredential(
            InlineStakeCredential(_credential_to_plutus(staking_part))
        )

    return PlutusAddress(
        payment_credential=_credential_to_plutus(address.payment_part),
        stake_credential=stake_credential,
    )


def plutus_to_address(data: PlutusAddress, network: Network) -> Address:
    """
    Decode an on-chain address into a ledger address for ``network``.

    Raises:
        InvalidDatumError: If the stake credential is a pointer
    """
    payment_part = _credential_from_plutus(data.payment_credential)

    staking_part = None
    if isinstance(data.stake_credential, SomeStakeCredential):
        inner = data.stake_credential.stake_credential
        if isinstance(inner, PointerStakeCredential):
            raise InvalidDatumError("Pointer stake credentials are not supported.")
        staking_part = _credential_from_plutus(inner.credential)

    return Address(payment_part=payment_part, staking_part=staking_part, network=network)


def payment_key_hash(address: Address) -> Optional[bytes]:
    """Raw hash of the address' payment credential."""
    if address.payment_part is None:
        return None
    return address.payment_part.payload


def plutus_payment_hash(data: PlutusAddress) -> bytes:
    credential = data.payment_credential
    if isinstance(credential, PubKeyCredential):
        return credential.key_hash
    return credential.script_hash


def optional_address_to_plutus(address: Optional[Address]) -> Union[SomeAddress, NoAddress]:
    if address is None:
        return NoAddress()
    return SomeAddress(address_to_plutus(address))


def datum_owner_payment_hash(datum: Union[SimpleDatum, AdvancedDatum]) -> Optional[bytes]:
    """Payment hash of a datum's owner. The stake part is not inspected."""
    if isinstance(datum, SimpleDatum):
        return plutus_payment_hash(datum.owner)
    if isinstance(datum.owner, SomeAddress):
        return plutus_payment_hash(datum.owner.address)
    return None


def datum_owner(
    datum: Union[SimpleDatum, AdvancedDatum],
    network: Network,
) -> Optional[Address]:
    """Owner of a datum as a ledger address, ``None`` when it has none."""
    if isinstance(datum, SimpleDatum):
        return plutus_to_address(datum.owner, network)
    if isinstance(datum.owner, SomeAddress):
        return plutus_to_address(datum.owner.address, network)
    return None
