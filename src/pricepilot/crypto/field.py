"""
Field element encoding.

Everything that enters a Poseidon hash or a circuit input passes through
FieldEncoder. Inputs arrive in several shapes (Python ints, decimal
strings from the store, 0x-hex from Keccak and the oracle, USD decimals
from invoices) and leave as integers reduced modulo the BN254 scalar field,
or as their canonical decimal-string form.

Rounding policy: fractional USD amounts are scaled to micro-units and
rounded half-up exactly once, here. Integer-looking strings are taken as
already-scaled micro-units and are never re-scaled.
"""
from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Union

from ..exceptions import FieldEncodingError

logger = logging.getLogger(__name__)


FIELD_MODULUS = int(
    "21888242871839275222246405745257275088548364400416034343698204186575808495617"
)
MICROS_PER_UNIT = 1_000_000

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?\d*\.\d+$")

FieldInput = Union[int, str, Decimal, float, None]


def scale_to_micros(amount: Union[Decimal, str, int, float]) -> int:
    """
    Convert a unit amount (e.g. USD) to integer micro-units, half-up.

    >>> scale_to_micros("199.99")
    199990000
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise FieldEncodingError(
            message=f"Not a decimal amount: {amount!r}",
            details={"upstream": str(e)},
        ) from e
    if not value.is_finite():
        raise FieldEncodingError(message=f"Not a finite amount: {amount!r}")
    return int((value * MICROS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_hex32(value: Union[int, str]) -> str:
    """Render a field value as 0x + 64 lowercase hex digits."""
    as_int = value if isinstance(value, int) else parse_int(value)
    if as_int < 0:
        raise FieldEncodingError(message=f"Negative value has no hex32 form: {value!r}")
    return "0x" + format(as_int, "064x")


def parse_int(value: Union[int, str]) -> int:
    """Parse an int, a decimal string or a 0x-hex string; raises on anything else."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text[:2].lower() == "0x":
            return int(text[2:], 16)
        return int(text, 10)
    except ValueError as e:
        raise FieldEncodingError(
            message=f"Not an integer: {value!r}",
            details={"upstream": str(e)},
        ) from e


class FieldEncoder:
    """
    Normalizes heterogeneous numeric inputs into field elements.

    In the default lenient mode, empty or unparseable inputs encode to the
    zero element and a warning is logged. With ``strict=True`` they raise
    FieldEncodingError instead.
    """

    def __init__(self, strict: bool = False, modulus: int = FIELD_MODULUS):
        self.strict = strict
        self.modulus = modulus

    def to_int(self, value: FieldInput, name: str = "value") -> int:
        if value is None:
            return self._unparseable(value, name)

        if isinstance(value, bool):
            return int(value)

        if isinstance(value, int):
            return value % self.modulus

        if isinstance(value, (Decimal, float)):
            if not Decimal(str(value)).is_finite():
                return self._unparseable(value, name)
            return scale_to_micros(value) % self.modulus

        text = str(value).strip()
        if not text:
            return self._unparseable(value, name)

        if text[:2].lower() == "0x":
            try:
                return int(text[2:], 16) % self.modulus
            except ValueError:
                return self._unparseable(value, name)

        if _INTEGER_RE.match(text):
            return int(text) % self.modulus

        if _DECIMAL_RE.match(text):
            return scale_to_micros(text) % self.modulus

        return self._unparseable(value, name)

    def encode(self, value: FieldInput, name: str = "value") -> str:
        """Canonical decimal-string form of the field element."""
        return str(self.to_int(value, name))

    def encode_many(self, values: Iterable[Any], name: str = "values") -> list[str]:
        return [self.encode(v, f"{name}[{i}]") for i, v in enumerate(values)]

    def _unparseable(self, value: Any, name: str) -> int:
        if self.strict:
            raise FieldEncodingError(
                message=f"Cannot encode {name} as a field element: {value!r}",
                details={"field": name},
            )
        logger.warning("Field input %s is empty or unparseable; encoding as zero", name)
        return 0
