"""CLI entrypoint for orbit."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Callable, Optional

from solders.pubkey import Pubkey

from .compose import Composition, Query
from .config import (
    config_path,
    load_chain_config,
    load_document,
    load_keypair,
    parse_assignment,
    save_document,
    set_value,
)
from .constants import SUPPORTED_CHAINS
from .context import CallContext
from .dispatch import contracts, dispatch, resolve
from .errors import ConfigurationError, OrbitError, UnsupportedOperation
from .pda import find_program_address, parse_seed_spec
from .rpc import SolanaRpc
from .submit import submit


def _ask_yes_no(question: str, reader: Callable[[str], str] = input) -> bool:
    while True:
        answer = reader(f"{question} [y/N] ").strip().lower()
        if answer in {"y", "yes"}:
            return True
        if answer in {"", "n", "no"}:
            return False
        print("Please answer with 'yes' or 'no'.")


def _parse_params(raw: str) -> dict[str, Any]:
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON format for --params: {exc}") from exc
    if not isinstance(params, dict):
        raise ConfigurationError("--params must be a JSON object")
    return params


def _check_chain(chain: str) -> None:
    if chain.lower() == "evm":
        raise UnsupportedOperation("EVM chains are not supported by this tool")
    if chain.lower() not in SUPPORTED_CHAINS:
        raise UnsupportedOperation(
            f"Unsupported chain '{chain}'. Supported chains are: {', '.join(sorted(SUPPORTED_CHAINS))}"
        )


def _cmd_call(args: argparse.Namespace) -> int:
    _check_chain(args.chain)
    params = _parse_params(args.params)
    resolve(args.contract, args.method)

    print(f"Calling contract '{args.contract}' on chain '{args.chain}' ({args.env} environment)")
    print(f"Method: {args.method}")
    print(f"Parameters: {json.dumps(params)}")
    if not args.yes and not _ask_yes_no("Do you want to continue?"):
        print("Aborted")
        return 1

    chain = load_chain_config(args.env, path=args.config, rpc_override=args.rpc_url)
    signer = load_keypair(args.sender)
    print(f"Using sender address: {signer.pubkey()}")
    ctx = CallContext(signer=signer, rpc=SolanaRpc(chain.rpc_url), chain=chain)

    result = dispatch(ctx, args.contract, args.method, params)
    if isinstance(result, Query):
        print(f"{result.label}: {json.dumps(result.value)}")
        return 0
    if not isinstance(result, Composition):
        raise TypeError(f"unexpected composer result: {type(result).__name__}")
    print(f"Executing {result.summary}")
    signature = submit(ctx, result)
    print(f"Tx signature: {signature}")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    if args.set:
        key_path, value = parse_assignment(args.set)
        data = set_value(load_document(args.config), key_path, value)
        path = save_document(data, args.config)
        print(f"Configuration saved: {key_path} = {value} ({path})")
        return 0
    if args.view:
        data = load_document(args.config)
        print(json.dumps(data, indent=2))
        print(f"Configuration file location: {config_path(args.config)}")
        return 0
    print("Please specify an option. Use --help for more information.")
    return 1


def _cmd_pda(args: argparse.Namespace) -> int:
    try:
        program = Pubkey.from_string(args.program_id)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid program id: {args.program_id}") from exc
    seeds = [parse_seed_spec(spec) for spec in args.seeds]
    address, bump = find_program_address(seeds, program)
    print(f"{address} (bump {bump})")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog=os.path.basename(sys.argv[0]),
        description="Call contract methods of the cross-chain messaging protocol.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_call = sub.add_parser("call", parents=[common], help="Call a method on a contract")
    p_call.add_argument("contract", help=f"Contract name ({', '.join(contracts())})")
    p_call.add_argument("-m", "--method", required=True, help="Method name to invoke")
    p_call.add_argument("-p", "--params", required=True, help="Method parameters in JSON format")
    p_call.add_argument("-c", "--chain", required=True, help="Blockchain to interact with")
    p_call.add_argument("-s", "--sender", help="Path to the sender's Solana keypair file")
    p_call.add_argument("-e", "--env", default="testnet", help="Environment (mainnet/testnet)")
    p_call.add_argument("--sub-chain", help="Sub-chain for EVM chains (unused for solana)")
    p_call.add_argument("--rpc-url", help="RPC URL override")
    p_call.add_argument("--config", help="Config file (default: ~/.orbit/config.toml)")
    p_call.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    p_call.set_defaults(func=_cmd_call)

    p_config = sub.add_parser("config", parents=[common], help="Configure the CLI tool")
    p_config.add_argument("-s", "--set", help="Set a configuration value (key.nestedKey=value)")
    p_config.add_argument("-v", "--view", action="store_true", help="View current configuration")
    p_config.add_argument("--config", help="Config file (default: ~/.orbit/config.toml)")
    p_config.set_defaults(func=_cmd_config)

    p_pda = sub.add_parser("pda", parents=[common], help="Derive a program address")
    p_pda.add_argument("program_id", help="Owning program id")
    p_pda.add_argument("seeds", nargs="*", help="Seeds: string:x hex:.. pubkey:.. u8:n u64be:n u128be:n")
    p_pda.set_defaults(func=_cmd_pda)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except OrbitError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
