"""
Route endpoints.

A router consumes request UTxOs, keeps its fee, and reproduces the remaining
value at the route address with a datum built by the destination's hook.
"""

from typing import Dict, List, Optional

import structlog

from pycardano import Address, Transaction, TransactionInput, UTxO, Value

from smart_handles.core.assets import reduce_coin_by
from smart_handles.core.codec import parse_safe_datum
from smart_handles.core.constants import (
    BAD_ADDITIONAL_ACTIONS_LABEL,
    BAD_ROUTES_LABEL,
    LOVELACE_MARGIN,
    ROUTER_FEE,
)
from smart_handles.core.errors import (
    ConfigMismatchError,
    NotFoundError,
    Result,
    error_to_string,
    failure_result,
)
from smart_handles.core.models import (
    BatchRouteConfig,
    InputUTxOAndOutputInfo,
    RouteConfig,
    SingleRouteConfig,
    as_output_datum,
    call_hook,
)
from smart_handles.core.types import (
    AdvancedDatum,
    BatchRouteRedeemer,
    BatchWithdrawRedeemer,
    RouteRedeemer,
)
from smart_handles.core.utxos import (
    async_validate_items,
    build_input_indices,
    collect_error_msgs,
    ensure_unique_out_refs,
    out_ref_key,
    print_out_ref,
    select_utxos,
)
from smart_handles.core.validators import (
    resolve_batch_validators,
    resolve_single_validator,
)
from smart_handles.node.interface import LedgerClient, TxBuilder

logger = structlog.get_logger(__name__)


async def utxo_to_output_info(
    utxo: UTxO,
    route_config: RouteConfig,
    route_address: Address,
    for_single: bool,
) -> InputUTxOAndOutputInfo:
    """
    Work out how a request UTxO is spent and what it must produce.

    Args:
        utxo: The request UTxO
        route_config: Config declared for this UTxO
        route_address: Destination of the routed output
        for_single: Whether the single script's positional redeemer is needed

    Raises:
        ConfigMismatchError: If the config targets another UTxO
        MissingDatumError, InvalidDatumError, KindMismatchError: If the datum
            is absent, malformed or of another kind than declared
        InsufficientFundsError: If the UTxO cannot cover the router fee
    """
    if route_config.out_ref != utxo.input:
        raise ConfigMismatchError(
            f"Route config targets {print_out_ref(route_config.out_ref)}, "
            f"not {print_out_ref(utxo)}"
        )

    datum = parse_safe_datum(utxo, route_config.kind).unwrap()
    fee = datum.router_fee if isinstance(datum, AdvancedDatum) else ROUTER_FEE
    output_value = reduce_coin_by(utxo.output.amount, fee)
    output_datum = as_output_datum(
        await call_hook(route_config.output_datum_maker, utxo.output.amount, datum)
    )

    if for_single:
        make_redeemer = lambda own_index: RouteRedeemer(own_index, 0)
    else:
        make_redeemer = lambda own_index: BatchRouteRedeemer()

    return InputUTxOAndOutputInfo(
        utxo=utxo,
        datum=datum,
        make_redeemer=make_redeemer,
        output_address=route_address,
        output_value=output_value,
        output_datum=output_datum,
        additional_action=route_config.additional_action,
    )


async def _apply_additional_action(tx: TxBuilder, info: InputUTxOAndOutputInfo) -> TxBuilder:
    if info.additional_action is None:
        return tx
    return await call_hook(info.additional_action, tx, info.utxo)


async def fetch_exact_utxos(
    ledger: LedgerClient,
    refs: List[TransactionInput],
) -> List[UTxO]:
    """
    Fetch every reference, in the order given.

    Raises:
        NotFoundError: Listing the references that could not be fetched
    """
    fetched = await ledger.get_utxos_by_refs(refs)
    by_ref: Dict = {out_ref_key(utxo): utxo for utxo in fetched}
    missing = [print_out_ref(ref) for ref in refs if out_ref_key(ref) not in by_ref]
    if missing:
        raise NotFoundError(f"Failed to fetch UTxO(s): {', '.join(missing)}")
    return [by_ref[out_ref_key(ref)] for ref in refs]


async def single_route(ledger: LedgerClient, config: SingleRouteConfig) -> Result[Transaction]:
    """
    Build a transaction routing one request UTxO of the single script.

    The router's wallet provides a fee input and collects the change,
    including the router fee.
    """
    try:
        validator = resolve_single_validator(config.script_cbor, ledger.network)

        found = await ledger.get_utxos_by_refs([config.request_out_ref])
        if not found:
            raise NotFoundError(
                f"Failed to fetch the specified UTxO: {print_out_ref(config.request_out_ref)}"
            )
        utxo = found[0]

        wallet_utxos = await ledger.get_wallet_utxos()
        fee_utxos = select_utxos(wallet_utxos, Value(LOVELACE_MARGIN))

        info = await utxo_to_output_info(utxo, config.route, config.route_address, True)
        [own_index] = build_input_indices([utxo], fee_utxos)

        tx = (
            ledger.new_tx()
            .spend([utxo], info.make_redeemer(own_index))
            .spend(fee_utxos)
            .attach_validator(validator.script)
            .pay_to_address(
                info.output_address,
                info.output_value,
                info.output_datum.datum,
                inline=not info.output_datum.as_hash,
            )
        )
        tx = await _apply_additional_action(tx, info)
        transaction = await tx.finalize()

        logger.info(
            "route_tx_built",
            out_ref=print_out_ref(utxo),
            kind=info.datum.KIND.value,
            input_index=own_index,
        )
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "route_failed", out_ref=print_out_ref(config.request_out_ref))


async def batch_route(ledger: LedgerClient, config: BatchRouteConfig) -> Result[Transaction]:
    """
    Build a transaction routing several request UTxOs of the batch script.

    Every input is spent with the batch route redeemer; the actual checks run
    once in the withdrawal validator, whose redeemer lists the canonical
    input indices and the matching output positions.
    """
    try:
        if not config.request_out_refs:
            raise NotFoundError("No request out refs provided.")
        if len(config.routes) != len(config.request_out_refs):
            raise ConfigMismatchError(
                f"Expected {len(config.request_out_refs)} route config(s), "
                f"got {len(config.routes)}"
            )
        ensure_unique_out_refs(config.request_out_refs)

        validators = resolve_batch_validators(config.script_cbor, ledger.network)
        utxos = await fetch_exact_utxos(ledger, config.request_out_refs)

        infos: List[InputUTxOAndOutputInfo] = []

        async def check(pair) -> Optional[str]:
            utxo, route_config = pair
            try:
                info = await utxo_to_output_info(utxo, route_config, config.route_address, False)
            except Exception as e:
                return f"{print_out_ref(utxo)}: {error_to_string(e)}"
            infos.append(info)
            return None

        pairs = list(zip(utxos, config.routes))
        messages = await async_validate_items(pairs, check, prepend_index=True)
        if messages:
            raise collect_error_msgs(messages, BAD_ROUTES_LABEL)

        # concurrent checks may finish out of order
        position = {out_ref_key(utxo): i for i, utxo in enumerate(utxos)}
        infos.sort(key=lambda info: position[out_ref_key(info.utxo)])

        wallet_utxos = await ledger.get_wallet_utxos()
        fee_utxos = select_utxos(wallet_utxos, Value(LOVELACE_MARGIN))

        input_indices = build_input_indices(utxos, fee_utxos)
        withdraw_redeemer = BatchWithdrawRedeemer(
            input_indices=input_indices,
            output_indices=list(range(len(input_indices))),
        )

        tx: TxBuilder = (
            ledger.new_tx()
            .spend(utxos, BatchRouteRedeemer())
            .spend(fee_utxos)
            .attach_validator(validators.spend.script)
            .withdraw(validators.stake.address, 0, withdraw_redeemer)
        )
        for info in infos:
            tx = tx.pay_to_address(
                info.output_address,
                info.output_value,
                info.output_datum.datum,
                inline=not info.output_datum.as_hash,
            )

        failures = []
        for i, info in enumerate(infos):
            try:
                tx = await _apply_additional_action(tx, info)
            except Exception as e:
                failures.append(f"(bad entry at index {i}) {error_to_string(e)}")
        if failures:
            raise collect_error_msgs(failures, BAD_ADDITIONAL_ACTIONS_LABEL)

        transaction = await tx.finalize()

        logger.info(
            "batch_route_tx_built",
            route_count=len(infos),
            input_indices=input_indices,
        )
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "batch_route_failed", route_count=len(config.request_out_refs))
