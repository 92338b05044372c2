#!/usr/bin/env python3
"""Simple CLI for scanning wallets locally"""

import argparse
import asyncio
from decimal import Decimal
from typing import List

from chainview.logging_config import setup_logging
from chainview.services.address import is_valid_address_for_kind, shorten_address
from chainview.services.engine import Engine, build_engine
from chainview.services.price_history import format_pnl, holdings_from_wallets
from chainview.services.pricing import price_balances
from chainview.types import ConnectedWallet, TokenBalance, WalletKind, total_usd


def print_balances(address: str, kind: WalletKind, balances: List[TokenBalance]):
    """Pretty print priced balances"""
    print("\n🔄 Balance Scan")
    print("=" * 60)
    print(f"Address: {address}")
    print(f"Kind: {kind.value}")
    print(f"Total Value: ${total_usd(balances):,.2f} USD")
    print(f"Token Count: {len(balances)}")

    if not balances:
        print("\nNo balances found")
        return

    print("\nTokens:")
    print("-" * 60)
    ordered = sorted(balances, key=lambda b: b.usd_value, reverse=True)
    for i, token in enumerate(ordered, 1):
        value_str = f"${token.usd_value:,.2f}" if token.price_usd else "No price"
        price_str = f"@ ${token.price_usd:,.4f}" if token.price_usd else ""
        print(f"{i:2d}. {token.balance:>18} {token.symbol:<8} {token.chain.value:<10} {value_str:>12} {price_str}")


async def scan(engine: Engine, address: str, kind: WalletKind) -> List[TokenBalance]:
    balances = await engine.aggregator.get_all_chain_balances(address, kind)
    return await price_balances(balances, engine.spot_prices)


async def cli_balances(address: str, kind: WalletKind):
    """CLI command to scan and value one wallet"""
    print(f"🔍 Scanning {kind.value} wallet {shorten_address(address)}...")
    engine = build_engine()
    try:
        print_balances(address, kind, await scan(engine, address, kind))
    finally:
        await engine.aclose()


async def cli_pnl(address: str, kind: WalletKind):
    """CLI command to show P&L per window for one wallet"""
    print(f"📈 Computing P&L for {kind.value} wallet {shorten_address(address)}...")
    engine = build_engine()
    try:
        balances = await scan(engine, address, kind)
        wallet = ConnectedWallet(
            id="cli",
            address=address,
            kind=kind,
            name=shorten_address(address),
            balances=balances,
            total_usd_value=total_usd(balances),
            connected_at=0,
        )
        pnl = await engine.history.calculate_portfolio_pnl(holdings_from_wallets([wallet]))
    finally:
        await engine.aclose()

    print(f"\nCurrent Value: ${wallet.total_usd_value:,.2f} USD")
    for period, result in pnl.periods.items():
        display = format_pnl(result)
        marker = "🟢" if display["is_positive"] else "🔴"
        print(f"{marker} {period.value:>4}: {display['absolute']:>14} ({display['percent']})")


async def cli_prices(limit: int):
    engine = build_engine()
    try:
        coins = await engine.prices.get_top_coins(limit=limit)
    finally:
        await engine.aclose()

    if not coins:
        print("❌ No price data available")
        return
    for i, coin in enumerate(coins, 1):
        price = Decimal(str(coin.get("price_usd") or 0))
        change = coin.get("change_24h")
        change_str = f"{change:+.2f}%" if change is not None else "n/a"
        print(f"{i:3d}. {coin['symbol']:<8} ${price:,.4f} {change_str:>9}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chainview CLI")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (("balances", "Scan and value a wallet"), ("pnl", "Show 24h/7d/30d P&L for a wallet")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("kind", choices=[k.value for k in WalletKind], help="Wallet family")
        sub.add_argument("address", help="Wallet address")

    prices_parser = subparsers.add_parser("prices", help="Top coins by market cap")
    prices_parser.add_argument("--limit", type=int, default=20, help="Number of coins (default: 20)")

    return parser


async def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging()
    command = args.command.lower()

    if command in ("balances", "pnl"):
        kind = WalletKind(args.kind)
        if not is_valid_address_for_kind(args.address, kind):
            print(f"❌ Invalid {kind.value} address: {args.address}")
            return
        if command == "balances":
            await cli_balances(args.address, kind)
        else:
            await cli_pnl(args.address, kind)

    elif command == "prices":
        if args.limit <= 0:
            raise ValueError("Limit must be positive")
        await cli_prices(args.limit)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
