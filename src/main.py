"""CLI entrypoint for the swap tools."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tools import SwapTools


def _add_swap_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--protocol", default="dragonswap", help="dragonswap or sailor")
    parser.add_argument("--token-in", required=True, help="Input token address")
    parser.add_argument("--token-out", required=True, help="Output token address")
    parser.add_argument("--amount", required=True, help="Input amount, e.g. 1.5")
    parser.add_argument("--slippage-bps", type=int, default=200)
    parser.add_argument("--min-amount-out", help="Minimum output, in tokenOut units")
    parser.add_argument("--deadline", type=int, default=20, help="Deadline in minutes")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DEX swap agent CLI")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("protocols", help="List configured DEX protocols")

    quote = subparsers.add_parser("quote", help="Get a swap quote")
    _add_swap_args(quote)

    swap = subparsers.add_parser("swap", help="Execute a swap")
    _add_swap_args(swap)
    swap.add_argument("--gas-limit", type=int)
    swap.add_argument("--gas-price", type=int, help="Base gas price in wei")

    balance = subparsers.add_parser("balance", help="Token or native balance")
    balance.add_argument("--token", help="Token address (omit for native SEI)")
    balance.add_argument("--address", help="Owner address (defaults to wallet)")

    approve = subparsers.add_parser("approve", help="Approve a spender")
    approve.add_argument("--token", required=True)
    approve.add_argument("--amount", required=True)
    approve.add_argument("--spender", help="Spender address (defaults to router)")
    approve.add_argument("--protocol", default="dragonswap")

    for name, help_text in (
        ("scan-arb", "Compare quotes on both DEXes"),
        ("arb", "Scan and execute a two-leg arbitrage"),
    ):
        arb = subparsers.add_parser(name, help=help_text)
        arb.add_argument("--token-in", required=True)
        arb.add_argument("--token-out", required=True)
        arb.add_argument("--amount", required=True)
        arb.add_argument("--min-spread-bps", type=int, default=100)
        arb.add_argument("--slippage-bps", type=int, default=50)
        if name == "arb":
            arb.add_argument("--dry-run", action="store_true")

    tool = subparsers.add_parser("tool", help="Call a tool with a JSON params file")
    tool.add_argument("name", help="Tool name, e.g. execute_swap")
    tool.add_argument("--params", required=True, help="Path to JSON file")

    parser.set_defaults(command="protocols")
    return parser


def _tool_call(args: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    if args.command == "protocols":
        return "list_protocols", {}
    if args.command in ("quote", "swap"):
        params: dict[str, Any] = {
            "protocol": args.protocol,
            "tokenIn": args.token_in,
            "tokenOut": args.token_out,
            "amountIn": args.amount,
            "slippageBps": args.slippage_bps,
            "deadline": args.deadline,
        }
        if args.min_amount_out:
            params["minAmountOut"] = args.min_amount_out
        if args.command == "swap":
            params["gasLimit"] = args.gas_limit
            params["gasPrice"] = args.gas_price
            return "execute_swap", params
        return "get_quote", params
    if args.command == "balance":
        return "check_balance", {"tokenAddress": args.token, "address": args.address}
    if args.command == "approve":
        return "approve_token", {
            "tokenAddress": args.token,
            "amount": args.amount,
            "spender": args.spender,
            "protocol": args.protocol,
        }
    if args.command in ("scan-arb", "arb"):
        params = {
            "tokenIn": args.token_in,
            "tokenOut": args.token_out,
            "amountIn": args.amount,
            "minSpreadBps": args.min_spread_bps,
            "slippageBps": args.slippage_bps,
        }
        if args.command == "arb":
            params["dryRun"] = args.dry_run
            return "execute_arbitrage", params
        return "scan_arbitrage", params
    return args.name, _load_json_object(args.params)


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        tool, params = _tool_call(args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    tools = SwapTools.from_env()
    result = asyncio.run(tools.dispatch(tool, params))
    print(json.dumps(result, indent=2))
    if result.get("status") not in ("success", "dry_run"):
        sys.exit(1)


def _load_json_object(path: str) -> dict:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"JSON file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"JSON in {path} must be an object")
    return data


if __name__ == "__main__":
    main()
