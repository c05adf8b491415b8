"""
PricePilot CLI

Usage:
    python -m pricepilot.cli tier 199.99
    python -m pricepilot.cli commit --order A1 --price 199.99 --date 2025-01-15 --product X1
    python -m pricepilot.cli check --product MACBOOK --price 2499.00 [--threshold 10]

``commit`` prints only the public parts of the commitment; the opening
(salt included) is never written to stdout.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from .config import PricePilotConfig
from .crypto.field import scale_to_micros
from .crypto.poseidon import PoseidonHasher
from .engine.commitment_builder import CommitmentBuilder
from .engine.oracle_client import OracleClient
from .exceptions import PricePilotError
from .formatting import format_usd_from_micros
from .logging_config import configure_logging
from .models.commitment import InvoiceData
from .packs import load_tier_pack


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value}")


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value}")


def cmd_tier(args: argparse.Namespace, config: PricePilotConfig) -> int:
    table = load_tier_pack()
    price = scale_to_micros(args.usd)
    quote = table.classify(price)
    print(f"Price:   {format_usd_from_micros(price)} ({price} micro-units)")
    print(f"Tier:    {quote.tier}")
    print(f"Premium: {format_usd_from_micros(quote.premium)}")
    return 0


def cmd_commit(args: argparse.Namespace, config: PricePilotConfig) -> int:
    hasher = PoseidonHasher.from_config(config.prover.node_bin, config.prover.node_modules)
    builder = CommitmentBuilder(hasher, tier_table=load_tier_pack())
    result = builder.build(InvoiceData(
        order_number=args.order,
        purchase_price_usd=args.price,
        purchase_date=args.date,
        product_id=args.product,
    ))
    print(json.dumps(result.public_view(), indent=2))
    return 0


async def _check(args: argparse.Namespace, config: PricePilotConfig) -> int:
    hasher = PoseidonHasher.from_config(config.prover.node_bin, config.prover.node_modules)
    async with OracleClient(config.oracle, hasher=hasher) as oracle:
        result = await oracle.check_eligibility(
            args.product, scale_to_micros(args.price), args.threshold,
        )
    print(f"Product:  {result.matched_product_id}")
    print(f"Current:  {format_usd_from_micros(result.current_price)}")
    print(f"Drop:     {format_usd_from_micros(result.drop_amount)} ({result.drop_percentage}%)")
    print(f"Root:     {result.merkle_root}")
    print(f"Eligible: {'yes' if result.eligible else 'no'}")
    return 0


def cmd_check(args: argparse.Namespace, config: PricePilotConfig) -> int:
    return asyncio.run(_check(args, config))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="PricePilot price-drop protection CLI",
        prog="python -m pricepilot.cli",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    tier_parser = subparsers.add_parser("tier", help="Classify a USD price into a tier")
    tier_parser.add_argument("usd", type=_decimal, help="Price in USD")
    tier_parser.set_defaults(func=cmd_tier)

    commit_parser = subparsers.add_parser("commit", help="Build a purchase commitment")
    commit_parser.add_argument("--order", required=True, help="Order number")
    commit_parser.add_argument("--price", required=True, type=_decimal, help="Price in USD")
    commit_parser.add_argument("--date", required=True, type=_date, help="Purchase date (YYYY-MM-DD)")
    commit_parser.add_argument("--product", required=True, help="Product id")
    commit_parser.set_defaults(func=cmd_commit)

    check_parser = subparsers.add_parser("check", help="Check eligibility against the oracle")
    check_parser.add_argument("--product", required=True, help="Product id")
    check_parser.add_argument("--price", required=True, type=_decimal, help="Insured price in USD")
    check_parser.add_argument("--threshold", type=_decimal, default=None, help="Drop threshold in percent")
    check_parser.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = PricePilotConfig.from_env()
    configure_logging(config.log.level)
    try:
        return args.func(args, config)
    except PricePilotError as e:
        print(f"error: {e}", file=sys.stderr)
        if e.upstream_message:
            print(f"  upstream: {e.upstream_message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
