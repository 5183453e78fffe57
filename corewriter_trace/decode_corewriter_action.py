#!/usr/bin/env python3
"""
Decode CoreWriter `RawAction(address indexed user, bytes data)` payloads.

Usage:
    # decode a single payload (the action bytes, not the ABI-wrapped log data)
    corewriter-decode --data 0x01000001...

    # or export it
    EVENT_DATA=0x01000001... corewriter-decode

    # decode every CoreWriter action in a HyperEVM transaction
    corewriter-decode --tx 0xfda27b71... --network testnet
    corewriter-decode --tx 0xfda27b71... --rpc https://your-rpc-endpoint
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from web3.exceptions import TransactionNotFound

from .action_decoder import CoreWriterAction, DecodeError, decode_action
from .networks import NETWORKS, RPC_ENV_VAR, resolve_rpc_url, setup_web3
from .raw_action_log import RawActionLog, fetch_raw_actions

logger = logging.getLogger(__name__)

# Integers above this do not survive a JSON number round trip in most clients
MAX_SAFE_INTEGER = 2**53 - 1


def parse_none_value(value, convert_func=str):
    if value and isinstance(value, str) and value.lower() in ["none", "null"]:
        return None
    return convert_func(value) if value is not None else None


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def json_value(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool) and value > MAX_SAFE_INTEGER:
        return str(value)
    return value


def action_to_json(action: CoreWriterAction) -> Dict[str, Any]:
    body = action.to_dict()
    body["data"] = {key: json_value(value) for key, value in body["data"].items()}
    return body


def print_action(action: CoreWriterAction, indent: str = "  ") -> None:
    print(f"{indent}type: {action.type}")
    print(f"{indent}version: {action.version}")
    for key, value in action.data_dict().items():
        print(f"{indent}{key}: {format_value(value)}")


def print_raw_actions(tx_hash: str, raw_actions: List[RawActionLog]) -> None:
    print(f"=== CoreWriter Actions ({len(raw_actions)}) in {tx_hash} ===")
    for idx, raw_action in enumerate(raw_actions):
        print(f"\n[{idx}] log_index={raw_action.log_index} user={raw_action.user}")
        if raw_action.ok:
            print_action(raw_action.action)
        else:
            print(f"  error: {raw_action.error}")
            print(f"  payload: 0x{raw_action.payload.hex()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CoreWriter action decoder")

    parser.add_argument(
        "-d",
        "--data",
        type=lambda x: parse_none_value(x, str),
        default=os.environ.get("EVENT_DATA"),
        help="RawAction payload as hex (defaults to $EVENT_DATA)",
    )

    parser.add_argument(
        "-t",
        "--tx",
        type=lambda x: parse_none_value(x, str),
        default=None,
        help="HyperEVM transaction hash to fetch and decode",
    )

    parser.add_argument(
        "-n",
        "--network",
        choices=NETWORKS,
        default=None,
        help="Network to fetch the transaction from (defaults to custom when an RPC is given, else mainnet)",
    )

    parser.add_argument(
        "-r",
        "--rpc",
        type=lambda x: parse_none_value(x, str),
        default=os.environ.get(RPC_ENV_VAR),
        help=f'RPC endpoint for --network custom (defaults to ${RPC_ENV_VAR}, use "none" for None value)',
    )

    parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        default=False,
        help="Print decoded actions as JSON",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )

    return parser


def run_data(payload: str, as_json: bool) -> int:
    try:
        action = decode_action(payload)
    except DecodeError as e:
        logger.error(f"Failed to decode payload: {e}")
        return 1

    if as_json:
        print(json.dumps(action_to_json(action), indent=2))
    else:
        print("=== Action ===")
        print_action(action)
    return 0


def run_tx(tx_hash: str, network: Optional[str], rpc: Optional[str], as_json: bool) -> int:
    rpc_url = resolve_rpc_url(network, rpc)
    try:
        w3 = setup_web3(rpc_url)
        raw_actions = fetch_raw_actions(w3, tx_hash)
    except TransactionNotFound:
        logger.error(f"Transaction not found: {tx_hash}")
        return 1
    except ConnectionError as e:
        logger.error(str(e))
        return 1

    if not raw_actions:
        logger.error(f"No CoreWriter actions found in transaction {tx_hash}")
        return 1

    if as_json:
        print(json.dumps([
            {
                "logIndex": raw_action.log_index,
                "user": raw_action.user,
                "action": action_to_json(raw_action.action) if raw_action.ok else None,
                "error": raw_action.error,
            }
            for raw_action in raw_actions
        ], indent=2))
    else:
        print_raw_actions(tx_hash, raw_actions)
    return 0 if all(raw_action.ok for raw_action in raw_actions) else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.tx:
        return run_tx(args.tx, args.network, args.rpc, args.json)
    if args.data:
        return run_data(args.data, args.json)

    logger.error("Nothing to decode: pass --data, --tx or set EVENT_DATA")
    return 2


if __name__ == "__main__":
    sys.exit(main())
