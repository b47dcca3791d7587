"""
Reclaim endpoints.

Let the owner of a request take its funds back before it gets routed.
"""

from typing import Dict, List, Optional

import structlog

from pycardano import Address, Network, Transaction, UTxO, Value

from smart_handles.core.address import datum_owner, payment_key_hash, plutus_payment_hash
from smart_handles.core.assets import reduce_coin_by
from smart_handles.core.codec import parse_safe_datum
from smart_handles.core.constants import (
    BAD_RECLAIMS_LABEL,
    LOVELACE_MARGIN,
    NO_ADVANCED_RECLAIM_ERROR_MSG,
    NO_OWNER_ERROR_MSG,
    UNAUTHORIZED_OWNER_ERROR_MSG,
)
from smart_handles.core.errors import (
    ConfigMismatchError,
    NotFoundError,
    Result,
    UnauthorizedError,
    error_to_string,
    failure_result,
)
from smart_handles.core.models import (
    BatchReclaimConfig,
    InputUTxOAndOutputInfo,
    ReclaimConfig,
    SingleReclaimConfig,
    as_output_datum,
    call_hook,
)
from smart_handles.core.types import (
    AdvancedReclaimRedeemer,
    BatchReclaimRedeemer,
    BatchWithdrawRedeemer,
    ReclaimRedeemer,
    SimpleDatum,
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


async def utxo_to_reclaim_info(
    utxo: UTxO,
    reclaim_config: Optional[ReclaimConfig],
    wallet_address: Address,
    for_single: bool,
    network: Network,
) -> InputUTxOAndOutputInfo:
    """
    Work out how a request UTxO is reclaimed.

    Simple UTxOs may only be reclaimed by their owner, who must sign. Advanced
    UTxOs need a reclaim config with an output datum maker and a datum that
    names an owner; the value minus the reclaim router fee goes back to them.

    Raises:
        ConfigMismatchError: If the config targets another UTxO
        UnauthorizedError: If the wallet or datum does not allow the reclaim
    """
    if reclaim_config is not None and reclaim_config.out_ref != utxo.input:
        raise ConfigMismatchError(
            f"Reclaim config targets {print_out_ref(reclaim_config.out_ref)}, "
            f"not {print_out_ref(utxo)}"
        )

    kind = reclaim_config.kind if reclaim_config is not None else None
    datum = parse_safe_datum(utxo, kind).unwrap()

    if isinstance(datum, SimpleDatum):
        signer = payment_key_hash(wallet_address)
        if plutus_payment_hash(datum.owner) != signer:
            raise UnauthorizedError(UNAUTHORIZED_OWNER_ERROR_MSG)
        return InputUTxOAndOutputInfo(
            utxo=utxo,
            datum=datum,
            make_redeemer=lambda own_index: ReclaimRedeemer()
            if for_single
            else BatchReclaimRedeemer(),
            required_signer=signer,
            additional_action=reclaim_config.additional_action if reclaim_config else None,
        )

    if reclaim_config is None or reclaim_config.output_datum_maker is None:
        raise UnauthorizedError(NO_ADVANCED_RECLAIM_ERROR_MSG)
    owner = datum_owner(datum, network)
    if owner is None:
        raise UnauthorizedError(NO_OWNER_ERROR_MSG)

    output_value = reduce_coin_by(utxo.output.amount, datum.reclaim_router_fee)
    output_datum = as_output_datum(
        await call_hook(reclaim_config.output_datum_maker, utxo.output.amount, datum)
    )

    return InputUTxOAndOutputInfo(
        utxo=utxo,
        datum=datum,
        make_redeemer=lambda own_index: AdvancedReclaimRedeemer(own_index, 0)
        if for_single
        else BatchReclaimRedeemer(),
        output_address=owner,
        output_value=output_value,
        output_datum=output_datum,
        additional_action=reclaim_config.additional_action,
    )


async def complement_tx(tx: TxBuilder, info: InputUTxOAndOutputInfo) -> TxBuilder:
    """Apply the info's additional action, then pay its output if it has one."""
    if info.additional_action is not None:
        tx = await call_hook(info.additional_action, tx, info.utxo)
    if info.output_address is not None:
        tx = tx.pay_to_address(
            info.output_address,
            info.output_value,
            info.output_datum.datum,
            inline=not info.output_datum.as_hash,
        )
    return tx


async def single_reclaim(ledger: LedgerClient, config: SingleReclaimConfig) -> Result[Transaction]:
    """
    Build a transaction reclaiming one request UTxO of the single script.

    Without an explicit reclaim config the UTxO is expected to carry a
    simple datum owned by the calling wallet.
    """
    try:
        validator = resolve_single_validator(config.script_cbor, ledger.network)

        found = await ledger.get_utxos_by_refs([config.request_out_ref])
        if not found:
            raise NotFoundError(
                f"Failed to fetch the specified UTxO: {print_out_ref(config.request_out_ref)}"
            )
        utxo = found[0]

        wallet_address = await ledger.get_wallet_address()
        info = await utxo_to_reclaim_info(
            utxo, config.reclaim, wallet_address, True, ledger.network
        )

        wallet_utxos = await ledger.get_wallet_utxos()
        fee_utxos = select_utxos(wallet_utxos, Value(LOVELACE_MARGIN))
        [own_index] = build_input_indices([utxo], fee_utxos)

        tx = (
            ledger.new_tx()
            .spend([utxo], info.make_redeemer(own_index))
            .spend(fee_utxos)
            .attach_validator(validator.script)
        )
        if info.required_signer is not None:
            tx = tx.require_signer(info.required_signer)
        tx = await complement_tx(tx, info)
        transaction = await tx.finalize()

        logger.info(
            "reclaim_tx_built",
            out_ref=print_out_ref(utxo),
            kind=info.datum.KIND.value,
        )
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "reclaim_failed", out_ref=print_out_ref(config.request_out_ref))


async def batch_reclaim(ledger: LedgerClient, config: BatchReclaimConfig) -> Result[Transaction]:
    """
    Build a transaction reclaiming several request UTxOs of the batch script.

    References that cannot be fetched are skipped; the call only fails with
    ``NotFound`` when none of them can be.
    """
    try:
        if not config.request_out_refs:
            raise NotFoundError("No out refs provided.")
        ensure_unique_out_refs(config.request_out_refs)

        validators = resolve_batch_validators(config.script_cbor, ledger.network)
        utxos = await ledger.get_utxos_by_refs(config.request_out_refs)
        if not utxos:
            raise NotFoundError("None of the specified UTxOs could be fetched.")

        wallet_address = await ledger.get_wallet_address()
        configs: Dict = {out_ref_key(rc.out_ref): rc for rc in config.reclaims}
        infos: Dict = {}

        async def check(utxo: UTxO) -> Optional[str]:
            try:
                info = await utxo_to_reclaim_info(
                    utxo,
                    configs.get(out_ref_key(utxo)),
                    wallet_address,
                    False,
                    ledger.network,
                )
            except Exception as e:
                return f"{print_out_ref(utxo)}: {error_to_string(e)}"
            infos[out_ref_key(utxo)] = info
            return None

        messages = await async_validate_items(utxos, check, prepend_index=True)
        if messages:
            raise collect_error_msgs(messages, BAD_RECLAIMS_LABEL)

        wallet_utxos = await ledger.get_wallet_utxos()
        fee_utxos = select_utxos(wallet_utxos, Value(LOVELACE_MARGIN))

        input_indices = build_input_indices(utxos, fee_utxos)
        withdraw_redeemer = BatchWithdrawRedeemer(
            input_indices=input_indices,
            output_indices=list(range(len(input_indices))),
        )

        tx: TxBuilder = (
            ledger.new_tx()
            .spend(utxos, BatchReclaimRedeemer())
            .spend(fee_utxos)
            .attach_validator(validators.spend.script)
            .withdraw(validators.stake.address, 0, withdraw_redeemer)
        )

        ordered: List[InputUTxOAndOutputInfo] = [infos[out_ref_key(u)] for u in utxos]
        signers = {info.required_signer for info in ordered if info.required_signer is not None}
        for signer in sorted(signers):
            tx = tx.require_signer(signer)

        failures = []
        for i, info in enumerate(ordered):
            try:
                tx = await complement_tx(tx, info)
            except Exception as e:
                failures.append(f"(bad entry at index {i}) {error_to_string(e)}")
        if failures:
            raise collect_error_msgs(failures, BAD_RECLAIMS_LABEL)

        transaction = await tx.finalize()

        logger.info(
            "batch_reclaim_tx_built",
            reclaim_count=len(ordered),
            skipped=len(config.request_out_refs) - len(utxos),
        )
        return Result.ok(transaction)

    except Exception as e:
        return failure_result(e, "batch_reclaim_failed", reclaim_count=len(config.request_out_refs))
