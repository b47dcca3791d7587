"""
Request endpoints.

Lock funds at a smart handles script address, with a datum that tells a
router what to do with them.
"""

from typing import Optional

import structlog

from pycardano import Address, Transaction

from smart_handles.core.address import address_to_plutus, optional_address_to_plutus
from smart_handles.core.constants import (
    BAD_REQUESTS_LABEL,
    INSUFFICIENT_ADA_ERROR_MSG,
    LOVELACE_MARGIN,
    ROUTER_FEE,
)
from smart_handles.core.errors import InsufficientFundsError, Result, failure_result
from smart_handles.core.models import (
    AdvancedRouteRequest,
    BatchRequestConfig,
    RouteRequest,
    SingleRequestConfig,
)
from smart_handles.core.types import AdvancedDatum, SimpleDatum, SmartHandleDatum
from smart_handles.core.utxos import collect_error_msgs, validate_items
from smart_handles.core.validators import (
    resolve_batch_validators,
    resolve_single_validator,
)
from smart_handles.node.interface import LedgerClient, TxBuilder

logger = structlog.get_logger(__name__)


def minimum_lovelace(route_request: RouteRequest, additional_required_lovelaces: int = 0) -> int:
    """
    Least amount of lovelace a request must lock.

    Simple requests only need to cover the fixed router fee; advanced ones
    cover the larger of their two fees plus whatever the destination needs.
    """
    if isinstance(route_request, AdvancedRouteRequest):
        return (
            additional_required_lovelaces
            + max(route_request.router_fee, route_request.reclaim_router_fee)
            + LOVELACE_MARGIN
        )
    return ROUTER_FEE + LOVELACE_MARGIN


def check_route_request(
    route_request: RouteRequest,
    additional_required_lovelaces: int = 0,
) -> Optional[str]:
    """Failure message for an underfunded request, ``None`` if it is fine."""
    required = minimum_lovelace(route_request, additional_required_lovelaces)
    if route_request.value_to_lock.coin < required:
        return INSUFFICIENT_ADA_ERROR_MSG
    return None


def make_request_datum(route_request: RouteRequest, wallet_address: Address) -> SmartHandleDatum:
    """Build the datum of a request output."""
    if isinstance(route_request, AdvancedRouteRequest):
        return AdvancedDatum(
            owner=optional_address_to_plutus(route_request.owner),
            router_fee=route_request.router_fee,
            reclaim_router_fee=route_request.reclaim_router_fee,
            extra_info=route_request.extra_info,
        )
    return SimpleDatum(owner=address_to_plutus(route_request.owner or wallet_address))


async def single_request(ledger: LedgerClient, config: SingleRequestConfig) -> Result[Transaction]:
    """
    Build a transaction locking one request at the single script address.

    Returns:
        The unsigned transaction, or an ``InsufficientFunds`` failure when the
        locked lovelace is below the minimum
    """
    try:
        message = check_route_request(config.route_request, config.additional_required_lovelaces)
        if message is not None:
            raise InsufficientFundsError(message)

        validator = resolve_single_validator(config.script_cbor, ledger.network)
        wallet_address = await ledger.get_wallet_address()
        datum = make_request_datum(config.route_request, wallet_address)

        tx = ledger.new_tx().pay_to_address(
            validator.address,
            config.route_request.value_to_lock,
            datum,
        )
        transaction = await tx.finalize()

        logger.info(
            "request_tx_built",
            kind=config.route_request.kind.value,
            lovelace=config.route_request.value_to_lock.coin,
        )
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "request_failed")


async def batch_request(ledger: LedgerClient, config: BatchRequestConfig) -> Result[Transaction]:
    """
    Build a transaction locking several requests at the batch script address.

    Every request is checked first; if any is underfunded, nothing is built
    and all failures are reported together.
    """
    try:
        messages = validate_items(
            config.route_requests,
            lambda request: check_route_request(request, config.additional_required_lovelaces),
            prepend_index=True,
        )
        if messages:
            raise collect_error_msgs(messages, BAD_REQUESTS_LABEL)

        validators = resolve_batch_validators(config.script_cbor, ledger.network)
        wallet_address = await ledger.get_wallet_address()

        tx: TxBuilder = ledger.new_tx()
        for route_request in config.route_requests:
            tx = tx.pay_to_address(
                validators.spend.address,
                route_request.value_to_lock,
                make_request_datum(route_request, wallet_address),
            )
        transaction = await tx.finalize()

        logger.info("batch_request_tx_built", request_count=len(config.route_requests))
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "batch_request_failed", request_count=len(config.route_requests))
