"""
PricePilot Commitment Models

- InvoiceData: the purchase as captured at intake (ephemeral)
- PurchaseDetails: the private opening of a commitment
- CommitmentResult: what one insure action produces
- CommitmentRecord: the persisted companion of a policy (commitments_<address>)

Persisted shapes use camelCase keys. Field values that can exceed 2^53 are
stored as strings.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union


def as_int(value: Union[int, str]) -> int:
    """Parse an int stored as int, decimal string, or 0x-hex string."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text[:2].lower() == "0x":
        return int(text[2:], 16)
    return int(text)


def hex32(value: int) -> str:
    return "0x" + format(value, "064x")


# =============================================================================
# Invoice Data
# =============================================================================

@dataclass(frozen=True)
class InvoiceData:
    """
    A purchase as captured upstream.

    Attributes:
        order_number: Retailer order identifier
        purchase_price_usd: Price in USD (fractional)
        purchase_date: Calendar date of purchase (UTC)
        product_id: Product identifier as listed by the oracle
    """
    order_number: str
    purchase_price_usd: Decimal
    purchase_date: date
    product_id: str


# =============================================================================
# Purchase Details (commitment opening)
# =============================================================================

@dataclass(frozen=True)
class PurchaseDetails:
    """
    The private opening of a commitment.

    Never sent to the ledger in cleartext; only Poseidon over these six
    values is published. ``product_id`` rides along for later oracle
    lookups and is not part of the hash.
    """
    order_hash: int
    invoice_price: int       # micro-units
    invoice_date: int        # unix seconds
    product_hash: int
    salt: int
    selected_tier: int
    product_id: Optional[str] = None

    def commitment_inputs(self) -> list[int]:
        return [
            self.order_hash,
            self.invoice_price,
            self.invoice_date,
            self.product_hash,
            self.salt,
            self.selected_tier,
        ]

    def with_product_id(self, product_id: str) -> PurchaseDetails:
        return PurchaseDetails(
            order_hash=self.order_hash,
            invoice_price=self.invoice_price,
            invoice_date=self.invoice_date,
            product_hash=self.product_hash,
            salt=self.salt,
            selected_tier=self.selected_tier,
            product_id=product_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "orderHash": hex32(self.order_hash),
            "invoicePrice": str(self.invoice_price),
            "invoiceDate": self.invoice_date,
            "productHash": str(self.product_hash),
            "salt": str(self.salt),
            "selectedTier": self.selected_tier,
            "productId": self.product_id or "unknown",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PurchaseDetails:
        return cls(
            order_hash=as_int(data["orderHash"]),
            invoice_price=as_int(data["invoicePrice"]),
            invoice_date=as_int(data["invoiceDate"]),
            product_hash=as_int(data["productHash"]),
            salt=as_int(data["salt"]),
            selected_tier=as_int(data["selectedTier"]),
            product_id=data.get("productId"),
        )


# =============================================================================
# Commitment Result
# =============================================================================

@dataclass(frozen=True)
class CommitmentResult:
    commitment: str          # 0x + 64 hex
    details: PurchaseDetails
    tier: int
    premium: int             # micro-units

    @property
    def short(self) -> str:
        return self.commitment[:10] + "..."

    def public_view(self) -> dict[str, Any]:
        """The parts that may be shown or sent on-chain."""
        return {
            "commitment": self.commitment,
            "tier": self.tier,
            "premium": str(self.premium),
        }


# =============================================================================
# Commitment Record (persisted)
# =============================================================================

@dataclass(frozen=True)
class CommitmentRecord:
    commitment: str
    tier: int
    premium: int
    details: PurchaseDetails

    @classmethod
    def from_result(cls, result: CommitmentResult) -> CommitmentRecord:
        return cls(
            commitment=result.commitment,
            tier=result.tier,
            premium=result.premium,
            details=result.details,
        )

    def to_dict(self) -> dict[str, Any]:
        details = self.details.to_dict()
        return {
            "commitment": self.commitment,
            "tier": self.tier,
            "premium": str(self.premium),
            "invoicePrice": details["invoicePrice"],
            "details": details,
            "salt": details["salt"],
            "productHash": details["productHash"],
            "orderHash": details["orderHash"],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitmentRecord:
        return cls(
            commitment=data["commitment"],
            tier=int(data["tier"]),
            premium=as_int(data["premium"]),
            details=PurchaseDetails.from_dict(data["details"]),
        )
