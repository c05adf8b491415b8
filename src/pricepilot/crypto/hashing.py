"""Keccak-256 helpers for order and product identifiers."""
from __future__ import annotations

from Crypto.Hash import keccak


def keccak256(data: bytes) -> bytes:
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    return digest.digest()


def keccak_text_hex(text: str) -> str:
    """Keccak-256 of the UTF-8 bytes of ``text`` as 0x-prefixed hex."""
    return "0x" + keccak256(text.encode("utf-8")).hex()


def keccak_text_int(text: str) -> int:
    """Keccak-256 of the UTF-8 bytes of ``text`` as a big-endian integer."""
    return int.from_bytes(keccak256(text.encode("utf-8")), "big")
