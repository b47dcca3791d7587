"""
Command-line interface for the smart handles tooling.

Provides commands for inspecting script addresses, pending requests and
datums.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import structlog

from pycardano import Address

from smart_handles import __version__
from smart_handles.config import NetworkType, ScriptTarget, SmartHandlesConfig, set_config
from smart_handles.core.address import datum_owner
from smart_handles.core.codec import decode_datum
from smart_handles.core.errors import InvalidDatumError
from smart_handles.core.types import AdvancedDatum, SmartHandleDatum
from smart_handles.core.utxos import print_out_ref
from smart_handles.core.validators import resolve_batch_validators, resolve_single_validator


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--network",
        choices=[n.value for n in NetworkType],
        default=None,
        help="Cardano network (default: from environment, else preprod)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="smart-handles",
        description="Off-chain tooling for the smart handles protocol",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Addresses command
    addresses_parser = subparsers.add_parser(
        "addresses", help="Print the single and batch addresses of a script"
    )
    addresses_parser.add_argument(
        "--script",
        help="Compiled validator (hex); defaults to SMART_HANDLES_SCRIPT_CBOR",
    )
    _add_common_arguments(addresses_parser)

    # Requests command
    requests_parser = subparsers.add_parser(
        "requests", help="List pending requests via Blockfrost"
    )
    requests_parser.add_argument(
        "--script",
        help="Compiled validator (hex); defaults to SMART_HANDLES_SCRIPT_CBOR",
    )
    requests_parser.add_argument(
        "--target",
        choices=["single", "batch"],
        default=None,
        help="Script variant to query (default: from environment, else single)",
    )
    requests_parser.add_argument(
        "--owner",
        help="Only list requests owned by this bech32 address",
    )
    requests_parser.add_argument(
        "--blockfrost-project-id",
        help="Blockfrost project ID",
    )
    _add_common_arguments(requests_parser)

    # Decode command
    decode_parser = subparsers.add_parser("decode-datum", help="Decode a datum CBOR hex")
    decode_parser.add_argument("cbor", help="Datum CBOR in hex")
    _add_common_arguments(decode_parser)

    return parser


def build_config(args: argparse.Namespace) -> SmartHandlesConfig:
    """Environment settings overridden by whatever was given on the command line."""
    overrides = {}
    if getattr(args, "network", None):
        overrides["network"] = NetworkType(args.network)
    if getattr(args, "script", None):
        overrides["script_cbor"] = args.script
    if getattr(args, "target", None):
        overrides["script_target"] = args.target
    if getattr(args, "blockfrost_project_id", None):
        overrides["blockfrost_project_id"] = args.blockfrost_project_id
    if getattr(args, "log_level", None):
        overrides["log_level"] = args.log_level
    if getattr(args, "log_json", False):
        overrides["log_json"] = True
    return SmartHandlesConfig(**overrides)


def _require_script(config: SmartHandlesConfig) -> str:
    if not config.script_cbor:
        print("No script given: pass --script or set SMART_HANDLES_SCRIPT_CBOR", file=sys.stderr)
        sys.exit(1)
    return config.script_cbor


def _format_owner(datum: SmartHandleDatum, config: SmartHandlesConfig) -> str:
    try:
        owner: Optional[Address] = datum_owner(datum, config.pycardano_network)
    except InvalidDatumError as e:
        return f"unsupported ({e.message})"
    return str(owner) if owner is not None else "none"


def format_datum(datum: SmartHandleDatum, config: SmartHandlesConfig) -> str:
    lines = [
        f"    Kind: {datum.KIND.value}",
        f"    Owner: {_format_owner(datum, config)}",
    ]
    if isinstance(datum, AdvancedDatum):
        lines.append(f"    Router Fee: {datum.router_fee / 1_000_000:.6f} ADA")
        lines.append(f"    Reclaim Router Fee: {datum.reclaim_router_fee / 1_000_000:.6f} ADA")
    return "\n".join(lines)


def show_addresses(config: SmartHandlesConfig) -> None:
    """Print the addresses derived from the configured script."""
    script = _require_script(config)
    network = config.pycardano_network

    single = resolve_single_validator(script, network)
    batch = resolve_batch_validators(script, network)

    print(f"Script Hash: {single.script_hash.payload.hex()}")
    print(f"Single Address: {single.address}")
    print(f"Batch Spend Address: {batch.spend.address}")
    print(f"Batch Reward Address: {batch.stake.address}")


async def list_requests(config: SmartHandlesConfig, owner: Optional[str]) -> None:
    """List pending requests at the configured script."""
    from smart_handles.endpoints.fetch import fetch_batch_requests, fetch_single_requests
    from smart_handles.node.blockfrost import BlockfrostLedger

    script = _require_script(config)
    owner_address = Address.from_primitive(owner) if owner else None

    ledger = BlockfrostLedger(config)
    await ledger.connect()

    try:
        if config.script_target == ScriptTarget.BATCH:
            requests = await fetch_batch_requests(ledger, script, owner_address)
        else:
            requests = await fetch_single_requests(ledger, script, owner_address)
    finally:
        await ledger.disconnect()

    if not requests:
        print("No requests found.")
        return

    print(f"Found {len(requests)} request(s):")
    print()
    for request in requests:
        print(f"  Request: {print_out_ref(request.out_ref)}")
        print(f"    ADA Amount: {request.value.coin / 1_000_000:.6f} ADA")
        print(format_datum(request.datum, config))
        print()


def decode_datum_command(config: SmartHandlesConfig, cbor_hex: str) -> None:
    """Decode a datum and print its fields."""
    result = decode_datum(cbor_hex)
    if not result.is_ok:
        print(f"Invalid datum ({result.kind.value}): {result.error.message}", file=sys.stderr)
        sys.exit(1)
    print(format_datum(result.value, config))


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = build_config(args)
    set_config(config)
    setup_logging(config.log_level, config.log_json)

    if args.command == "addresses":
        show_addresses(config)
    elif args.command == "requests":
        asyncio.run(list_requests(config, args.owner))
    elif args.command == "decode-datum":
        decode_datum_command(config, args.cbor)


if __name__ == "__main__":
    main()
