"""
Multi-asset value algebra.

All functions are pure: inputs are never mutated and a fresh ``Value`` is
returned. Entries with a zero quantity are dropped from results.
"""

from typing import Dict, Iterable

from pycardano import Asset, AssetName, MultiAsset, ScriptHash, UTxO, Value

from smart_handles.core.errors import InsufficientFundsError
from smart_handles.core.types import LOVELACE, AssetClass


def flatten_value(value: Value) -> Dict[AssetClass, int]:
    """
    Flatten a ``Value`` into a mapping of asset class to quantity.

    Lovelace is keyed by ``LOVELACE`` and only present when non-zero.
    """
    flat: Dict[AssetClass, int] = {}
    if value.coin:
        flat[LOVELACE] = value.coin
    for policy_id, assets in (value.multi_asset or {}).items():
        for asset_name, quantity in assets.items():
            if quantity:
                flat[AssetClass(policy_id.payload, asset_name.payload)] = quantity
    return flat


def build_value(assets: Dict[AssetClass, int]) -> Value:
    """Build a ``Value`` from a flat mapping, skipping zero quantities."""
    coin = 0
    multi_asset = MultiAsset()
    for asset_class, quantity in assets.items():
        if not quantity:
            continue
        if asset_class.is_lovelace:
            coin = quantity
            continue
        pid = ScriptHash(asset_class.policy_id)
        if pid not in multi_asset:
            multi_asset[pid] = Asset()
        multi_asset[pid][AssetName(asset_class.asset_name)] = quantity
    return Value(coin, multi_asset)


def union(a: Value, b: Value) -> Value:
    """Sum the quantities of both values per asset class."""
    result = flatten_value(a)
    for asset_class, quantity in flatten_value(b).items():
        result[asset_class] = result.get(asset_class, 0) + quantity
    return build_value(result)


def remove(a: Value, b: Value) -> Value:
    """
    Remove the quantities of ``b`` from ``a``.

    Any asset whose remaining quantity drops to zero or below is deleted, so
    the operation is not total. Assets of ``b`` missing from ``a`` are ignored.

    For e.g. ``remove({x: 5, y: 10}, {x: 3, y: 15, z: 4}) == {x: 2}``.
    """
    result = flatten_value(a)
    for asset_class, quantity in flatten_value(b).items():
        if asset_class not in result:
            continue
        remaining = result[asset_class] - quantity
        if remaining > 0:
            result[asset_class] = remaining
        else:
            del result[asset_class]
    return build_value(result)


def sum_assets(utxos: Iterable[UTxO]) -> Value:
    """Total value locked in the given UTxOs."""
    total = Value(0)
    for utxo in utxos:
        total = union(total, utxo.output.amount)
    return total


def reduce_coin_by(value: Value, fee: int) -> Value:
    """
    Subtract a flat fee from the lovelace of a value.

    Raises:
        InsufficientFundsError: If the value holds less lovelace than ``fee``
    """
    remaining = value.coin - fee
    if remaining < 0:
        raise InsufficientFundsError(
            f"Not enough Lovelaces to cover a fee of {fee}: only {value.coin} available"
        )
    flat = flatten_value(value)
    flat[LOVELACE] = remaining
    return build_value(flat)
