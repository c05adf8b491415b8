"""
Display and normalization helpers shared by the engine, store and CLI.
"""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from .crypto.field import MICROS_PER_UNIT, parse_int, to_hex32
from .exceptions import FieldEncodingError

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_product_id(value: str) -> str:
    """Uppercase and strip everything but A-Z and 0-9."""
    return _NON_ALNUM.sub("", (value or "").upper()).strip()


def normalize_address(address: str) -> str:
    return (address or "").strip().lower()


def normalize_root(root: Union[str, int]) -> str:
    """
    32-byte lowercase hex form of a Merkle root or commitment.

    Values that do not parse as integers are returned unchanged (lowercased)
    so comparisons against them fail rather than raise.
    """
    try:
        return to_hex32(parse_int(root))
    except FieldEncodingError:
        return str(root).lower()


def format_usd_from_micros(value: Union[int, str]) -> str:
    """
    >>> format_usd_from_micros(12_340_000)
    '$12.34'
    """
    try:
        micros = parse_int(value)
    except FieldEncodingError:
        return str(value)
    dollars = (Decimal(micros) / MICROS_PER_UNIT).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${dollars}"


def public_signals_to_ints(signals: Iterable[Union[int, str]]) -> list[int]:
    return [parse_int(s) for s in signals]
