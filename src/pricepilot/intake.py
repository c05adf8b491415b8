"""
Order intake.

Converts raw order items, as captured from a retailer page, into validated
InvoiceData. Captured values are loosely typed: prices arrive as "$1,299.00",
dates as ISO strings or nothing at all.
"""
from __future__ import annotations

import re
import time
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from .exceptions import InvalidInvoiceError
from .formatting import normalize_product_id
from .models.commitment import InvoiceData

UNKNOWN_PRODUCT = "UNKNOWN"

_PRICE_CHARS = re.compile(r"[^0-9.\-]")


def parse_price(value: Any) -> Optional[Decimal]:
    """Strip currency symbols and separators; None when nothing numeric remains."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        cleaned = _PRICE_CHARS.sub("", str(value))
        if not cleaned:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return None
    return amount if amount.is_finite() else None


def parse_order_date(value: Any, today: Callable[[], date]) -> date:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return today()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidInvoiceError(
            message=f"Unrecognized order date: {text}",
            details={"upstream": str(e)},
        ) from e
    return parsed.astimezone(timezone.utc).date() if parsed.tzinfo else parsed.date()


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def invoice_from_order_item(
    item: Mapping[str, Any],
    today: Callable[[], date] = _utc_today,
) -> InvoiceData:
    """
    Build InvoiceData from a captured order item.

    Recognized keys: orderId, price / orderTotal, orderDate, and asin /
    productId / productName / name for the product.
    """
    order_number = str(item.get("orderId") or "").strip() or f"ORDER_{int(time.time() * 1000)}"

    price = parse_price(item.get("price"))
    if price is None:
        price = parse_price(item.get("orderTotal"))

    raw_product = (
        item.get("asin") or item.get("productId")
        or item.get("productName") or item.get("name") or ""
    )
    product_id = normalize_product_id(str(raw_product)) or UNKNOWN_PRODUCT

    invoice = InvoiceData(
        order_number=order_number,
        purchase_price_usd=price if price is not None else Decimal(0),
        purchase_date=parse_order_date(item.get("orderDate"), today),
        product_id=product_id,
    )
    validate_invoice(invoice)
    return invoice


def validate_invoice(invoice: InvoiceData) -> None:
    """
    Raises:
        InvalidInvoiceError: listing every problem found
    """
    errors = []
    if not invoice.order_number.strip():
        errors.append("order number is required")
    if invoice.purchase_price_usd is None or invoice.purchase_price_usd <= 0:
        errors.append("purchase price must be positive")
    if not invoice.product_id.strip():
        errors.append("product id is required")
    if errors:
        raise InvalidInvoiceError(
            message="Invalid invoice: " + "; ".join(errors),
            details={"errors": errors},
        )
