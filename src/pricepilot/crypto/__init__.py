"""Field encoding and hash primitives."""
from __future__ import annotations

from .field import (
    FIELD_MODULUS,
    MICROS_PER_UNIT,
    FieldEncoder,
    parse_int,
    scale_to_micros,
    to_hex32,
)
from .hashing import keccak256, keccak_text_hex, keccak_text_int
from .merkle import compute_root, verify_proof, verify_proof_async
from .poseidon import CircomlibPoseidonBackend, PoseidonBackend, PoseidonHasher

__all__ = [
    "FIELD_MODULUS",
    "MICROS_PER_UNIT",
    "FieldEncoder",
    "parse_int",
    "scale_to_micros",
    "to_hex32",
    "keccak256",
    "keccak_text_hex",
    "keccak_text_int",
    "compute_root",
    "verify_proof",
    "verify_proof_async",
    "CircomlibPoseidonBackend",
    "PoseidonBackend",
    "PoseidonHasher",
]
