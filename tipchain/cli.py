#!/usr/bin/env python3
"""Small CLI for poking at Tip Chain locally"""

import argparse
import asyncio
import json
import re
import sys
from html import unescape
from typing import List, Optional, Tuple

import httpx

from .config import settings
from .core.errors import TipChainError
from .core.tips.registry import AssetRegistry
from .core.tips.tx_builder import TransactionPreparer, decode_erc20_transfer, format_units

_META_RE = re.compile(r'<meta property="(fc:frame[^"]*)" content="([^"]*)"')


def parse_frame_meta(html: str) -> List[Tuple[str, str]]:
    """Pull the fc:frame meta tags out of a frame page, in document order."""
    return [(name, unescape(content)) for name, content in _META_RE.findall(html)]


def print_transaction(tx: dict, registry: AssetRegistry) -> None:
    print(json.dumps(tx, indent=2))
    chain = registry.get_chain(tx["chainId"])
    chain_name = chain.name if chain else str(tx["chainId"])
    if tx["data"] == "0x":
        print(f"\n💸 Native transfer of {format_units(int(tx['value']), 18)} on {chain_name}")
    else:
        recipient, units = decode_erc20_transfer(tx["data"])
        print(f"\n💸 ERC-20 transfer of {units} base units to {recipient} on {chain_name}")


async def cli_prepare(amount: str, token: str, recipient: str, chain_id: Optional[int], remote: Optional[str]) -> int:
    """Prepare a tip locally, or through a running server with --remote"""
    registry = AssetRegistry(preferred_chain_id=settings.preferred_chain_id)

    if remote:
        payload = {"amount": amount, "token": token, "recipient": recipient, "chainId": chain_id}
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{remote.rstrip('/')}/tips/prepare", json=payload, timeout=30)
        if response.status_code != 200:
            print(f"❌ {response.status_code}: {response.text}")
            return 1
        print_transaction(response.json(), registry)
        return 0

    try:
        tx = TransactionPreparer(registry=registry).prepare(amount, token, recipient, chain_id)
    except TipChainError as e:
        print(f"❌ Error: {e}")
        return 1
    print_transaction(tx.to_dict(), registry)
    return 0


async def cli_frame(base_url: str, recipient: str, amount: Optional[str], token: Optional[str]) -> int:
    """Fetch the entry frame from a running server and list its meta tags"""
    params = {"recipient": recipient}
    if amount:
        params["amount"] = amount
    if token:
        params["token"] = token

    print(f"🖼️  Fetching {base_url.rstrip('/')}/frame ...")
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{base_url.rstrip('/')}/frame", params=params, timeout=30)
    if response.status_code != 200:
        print(f"❌ {response.status_code}: {response.text}")
        return 1

    print(f"Cache-Control: {response.headers.get('cache-control')}")
    print("-" * 50)
    for name, content in parse_frame_meta(response.text):
        print(f"{name:<28} {content}")
    return 0


def cli_serve(host: str, port: int, reload: bool) -> int:
    import uvicorn
    uvicorn.run(
        "tipchain.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tip Chain CLI")
    subparsers = parser.add_subparsers(dest="command")

    prepare_parser = subparsers.add_parser("prepare", help="Build an unsigned tip transaction")
    prepare_parser.add_argument("amount", help="Amount in whole token units, e.g. 0.05")
    prepare_parser.add_argument("token", help="Token symbol (ETH, USDC, USDT, WETH, DAI)")
    prepare_parser.add_argument("recipient", help="Recipient 0x address")
    prepare_parser.add_argument("--chain-id", type=int, default=None, help="Target chain (default: preferred chain)")
    prepare_parser.add_argument("--remote", default=None, help="Base URL of a running server to prepare through")

    frame_parser = subparsers.add_parser("frame", help="Show the entry frame of a running server")
    frame_parser.add_argument("--base-url", default=f"http://{settings.host}:{settings.port}", help="Server base URL")
    frame_parser.add_argument("--recipient", default="", help="Recipient to prefill")
    frame_parser.add_argument("--amount", default=None, help="Suggested amount")
    frame_parser.add_argument("--token", default=None, help="Token symbol")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "prepare":
        return await cli_prepare(args.amount, args.token, args.recipient, args.chain_id, args.remote)

    if args.command == "frame":
        return await cli_frame(args.base_url, args.recipient, args.amount, args.token)

    print(f"❌ Unknown command: {args.command}")
    parser.print_help()
    return 2


def run() -> None:
    args = sys.argv[1:]
    if args and args[0] == "serve":
        # uvicorn runs its own event loop
        ns = build_parser().parse_args(args)
        sys.exit(cli_serve(ns.host, ns.port, ns.reload))
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    run()
