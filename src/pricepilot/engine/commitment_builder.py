"""
PricePilot Commitment Builder

Derives a hiding purchase commitment and its private opening from invoice
data:

    commitment = Poseidon(orderHash, invoicePrice, invoiceDate,
                          productHash, salt, selectedTier)

orderHash is Keccak-256 of the order number, productHash is Poseidon over
Keccak-256 of the product id, and salt is 256 bits from the OS CSPRNG
reduced into the field. The salt is the only secret; it is never derived
from the other inputs.
"""
from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import date, datetime, time, timezone
from typing import Callable, Optional

from ..crypto.field import FIELD_MODULUS, scale_to_micros, to_hex32
from ..crypto.hashing import keccak_text_int
from ..crypto.poseidon import PoseidonHasher
from ..exceptions import InvalidInvoiceError, RandomnessError
from ..models.commitment import CommitmentResult, InvoiceData, PurchaseDetails
from ..models.tiers import DEFAULT_TIER_TABLE, TierTable

logger = logging.getLogger(__name__)

SALT_BYTES = 32


def secure_salt() -> int:
    """256 random bits from the OS generator, reduced into the field."""
    try:
        raw = secrets.token_bytes(SALT_BYTES)
    except (OSError, NotImplementedError) as e:
        raise RandomnessError(
            message="Secure randomness unavailable; refusing to build commitment",
            details={"upstream": str(e)},
        ) from e
    return int.from_bytes(raw, "big") % FIELD_MODULUS


def date_to_unix_seconds(value: date) -> int:
    """Unix seconds for a date (UTC midnight) or a datetime (naive taken as UTC)."""
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        moment = datetime.combine(value, time.min, tzinfo=timezone.utc)
    return int(moment.timestamp())


class CommitmentBuilder:
    """
    Builds CommitmentResults for insure actions.

    Usage:
        builder = CommitmentBuilder(PoseidonHasher())
        result = builder.build(invoice)
    """

    def __init__(
        self,
        hasher: PoseidonHasher,
        tier_table: TierTable = DEFAULT_TIER_TABLE,
        salt_source: Optional[Callable[[], int]] = None,
    ):
        self.hasher = hasher
        self.tier_table = tier_table
        self.salt_source = salt_source or secure_salt

    def product_hash(self, product_id: str) -> int:
        return self.hasher.hash([keccak_text_int(product_id)])

    def build(self, invoice: InvoiceData, salt: Optional[int] = None) -> CommitmentResult:
        """
        Build the commitment for one purchase.

        Args:
            invoice: Purchase data
            salt: Explicit salt (reproduces an earlier commitment); a fresh
                secure salt is drawn when omitted

        Raises:
            OutOfRangeError: If the price is outside every tier
            RandomnessError: If the OS generator fails
        """
        if not invoice.order_number:
            raise InvalidInvoiceError(message="Order number is required")
        if not invoice.product_id:
            raise InvalidInvoiceError(message="Product id is required")

        order_hash = keccak_text_int(invoice.order_number)
        invoice_price = scale_to_micros(invoice.purchase_price_usd)
        invoice_date = date_to_unix_seconds(invoice.purchase_date)

        quote = self.tier_table.classify(invoice_price)

        product_hash = self.product_hash(invoice.product_id)
        salt_value = self.salt_source() if salt is None else salt % FIELD_MODULUS

        details = PurchaseDetails(
            order_hash=order_hash,
            invoice_price=invoice_price,
            invoice_date=invoice_date,
            product_hash=product_hash,
            salt=salt_value,
            selected_tier=quote.tier,
            product_id=invoice.product_id,
        )
        commitment = to_hex32(self.hasher.hash(details.commitment_inputs()))

        result = CommitmentResult(
            commitment=commitment,
            details=details,
            tier=quote.tier,
            premium=quote.premium,
        )
        logger.info(
            "Built commitment %s (tier %d, premium %d)",
            result.short, quote.tier, quote.premium,
            extra={"commitment_short": result.short, "product_id": invoice.product_id},
        )
        return result

    async def build_async(self, invoice: InvoiceData, salt: Optional[int] = None) -> CommitmentResult:
        return await asyncio.to_thread(self.build, invoice, salt)
