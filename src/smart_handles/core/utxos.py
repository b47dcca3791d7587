"""
UTxO ordering, coin selection and per-item validation.

The ledger sorts transaction inputs by transaction hash and then by output
index; redeemers that point at inputs by position must use the same order.
"""

import asyncio
from functools import cmp_to_key
from types import MappingProxyType
from typing import (
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

import structlog

from pycardano import TransactionInput, UTxO, Value

from smart_handles.core.assets import build_value, flatten_value, remove
from smart_handles.core.errors import AggregateError, ConfigMismatchError, InsufficientFundsError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

OutRefLike = Union[TransactionInput, UTxO]


def _as_out_ref(ref: OutRefLike) -> TransactionInput:
    return ref.input if isinstance(ref, UTxO) else ref


def out_ref_key(ref: OutRefLike) -> Tuple[str, int]:
    """Sort key of an output reference: transaction hash hex, then index."""
    ref = _as_out_ref(ref)
    return ref.transaction_id.payload.hex(), ref.index


def compare_out_refs(a: OutRefLike, b: OutRefLike) -> int:
    """Three-way comparison of two output references in ledger order."""
    key_a, key_b = out_ref_key(a), out_ref_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def sort_out_refs(refs: Sequence[OutRefLike]) -> List[OutRefLike]:
    """Return the references in ledger input order. The input is not modified."""
    return sorted(refs, key=cmp_to_key(compare_out_refs))


def print_out_ref(ref: OutRefLike) -> str:
    """Render an output reference as ``txhash#index``."""
    ref = _as_out_ref(ref)
    return f"{ref.transaction_id.payload.hex()}#{ref.index}"


def ensure_unique_out_refs(refs: Sequence[OutRefLike]) -> None:
    """
    Reject a list that names the same output reference more than once.

    Raises:
        ConfigMismatchError: Listing every repeated reference
    """
    seen = set()
    repeated: List[str] = []
    for ref in refs:
        key = out_ref_key(ref)
        if key in seen:
            if print_out_ref(ref) not in repeated:
                repeated.append(print_out_ref(ref))
            continue
        seen.add(key)
    if repeated:
        raise ConfigMismatchError(f"Duplicate out refs: {', '.join(repeated)}")


def build_input_indices(
    selected: Sequence[OutRefLike],
    all_inputs: Sequence[OutRefLike],
) -> List[int]:
    """
    Find the positions ``selected`` will occupy among the transaction inputs.

    The union of both sequences is de-duplicated and sorted once; the
    resulting positions are returned in the order of ``selected``.

    Args:
        selected: Inputs whose positions are needed
        all_inputs: Every other input of the transaction

    Returns:
        One index per entry of ``selected``
    """
    keys = {out_ref_key(ref) for ref in list(selected) + list(all_inputs)}
    positions: Mapping[Tuple[str, int], int] = MappingProxyType(
        {key: i for i, key in enumerate(sorted(keys))}
    )
    return [positions[out_ref_key(ref)] for ref in selected]


def select_utxos(available: Sequence[UTxO], required: Value) -> List[UTxO]:
    """
    Greedily pick UTxOs until ``required`` is covered.

    UTxOs holding a reference script are skipped, and a UTxO is only taken
    when it holds at least one asset that is still outstanding.

    Raises:
        InsufficientFundsError: If the available UTxOs cannot cover the
            requirement
    """
    outstanding = flatten_value(required)
    selected: List[UTxO] = []

    for utxo in available:
        if not outstanding:
            break
        if utxo.output.script is not None:
            continue
        held = flatten_value(utxo.output.amount)
        if not any(asset_class in outstanding for asset_class in held):
            continue
        selected.append(utxo)
        outstanding = flatten_value(remove(build_value(outstanding), utxo.output.amount))

    if outstanding:
        missing = {asset_class.unit: qty for asset_class, qty in outstanding.items()}
        raise InsufficientFundsError(f"Insufficient funds for selection, missing {missing}")

    logger.debug("utxos_selected", count=len(selected))
    return selected


def _tag(index: int, message: str, prepend_index: bool) -> str:
    if prepend_index:
        return f"(bad entry at index {index}) {message}"
    return message


def validate_items(
    items: Sequence[T],
    check: Callable[[T], Optional[str]],
    prepend_index: bool = False,
) -> List[str]:
    """
    Run ``check`` over every item and collect its failure messages.

    ``check`` returns ``None`` when the item is valid, a message otherwise.
    """
    messages = []
    for i, item in enumerate(items):
        message = check(item)
        if message is not None:
            messages.append(_tag(i, message, prepend_index))
    return messages


async def async_validate_items(
    items: Sequence[T],
    check: Callable[[T], Awaitable[Optional[str]]],
    prepend_index: bool = False,
) -> List[str]:
    """Concurrent variant of ``validate_items``; messages keep item order."""
    results = await asyncio.gather(*(check(item) for item in items))
    return [
        _tag(i, message, prepend_index)
        for i, message in enumerate(results)
        if message is not None
    ]


def collect_error_msgs(messages: Sequence[str], label: str) -> AggregateError:
    return AggregateError(label, list(messages))
