"""
Test suite for validator loading and address resolution.
"""

from pycardano import Address, Network, PlutusV2Script, ScriptHash, VerificationKeyHash, plutus_script_hash

from smart_handles.core.validators import (
    load_script,
    resolve_batch_validators,
    resolve_single_validator,
)

from conftest import SCRIPT_HEX, STAKE_KEY_HASH

SINGLE_WRAPPED_HEX = SCRIPT_HEX[2:]


class TestLoadScript:
    """Tests for compiled code loading."""

    def test_single_and_double_wrapped_agree(self):
        assert load_script(SCRIPT_HEX) == load_script(SINGLE_WRAPPED_HEX)

    def test_result_is_single_wrapped(self):
        assert bytes(load_script(SCRIPT_HEX)) == bytes.fromhex(SINGLE_WRAPPED_HEX)

    def test_accepts_bytes(self):
        assert load_script(bytes.fromhex(SCRIPT_HEX)) == load_script(SCRIPT_HEX)

    def test_script_passes_through(self):
        script = PlutusV2Script(bytes.fromhex(SINGLE_WRAPPED_HEX))

        assert load_script(script) is script


class TestResolveValidators:
    """Tests for single and batch address derivation."""

    def test_single_address(self):
        va = resolve_single_validator(SCRIPT_HEX, Network.TESTNET)

        assert va.script_hash == plutus_script_hash(va.script)
        assert va.address.payment_part == va.script_hash
        assert va.address.staking_part is None
        assert va.address.network == Network.TESTNET

    def test_single_address_with_stake_credential(self):
        stake = VerificationKeyHash(STAKE_KEY_HASH)

        va = resolve_single_validator(SCRIPT_HEX, Network.MAINNET, stake)

        assert va.address.staking_part == stake
        assert va.address.network == Network.MAINNET

    def test_batch_addresses(self):
        vas = resolve_batch_validators(SCRIPT_HEX, Network.TESTNET)
        script_hash = vas.spend.script_hash

        assert isinstance(script_hash, ScriptHash)
        assert vas.spend.address == Address(script_hash, script_hash, network=Network.TESTNET)
        assert vas.stake.address == Address(staking_part=script_hash, network=Network.TESTNET)
        assert vas.stake.script == vas.spend.script

    def test_resolution_is_pure(self):
        assert resolve_batch_validators(SCRIPT_HEX, Network.TESTNET) == resolve_batch_validators(
            SCRIPT_HEX, Network.TESTNET
        )
