"""
Product catalog side-channel.

A JSON file of ``{id, name, basePrice}`` entries the oracle reads to
seed its price feed. The file is created with DEFAULT_PRODUCTS on first
access; an unreadable or non-array file is served as the defaults.
"""
from __future__ import annotations

import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from ..exceptions import CatalogValidationError, StoreError
from ..models.catalog import DEFAULT_PRODUCTS, CatalogProduct
from .backends import write_json_atomic

logger = logging.getLogger(__name__)


def _positive_price(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise CatalogValidationError(message="basePrice must be a positive number")
    if isinstance(value, float) and not math.isfinite(value):
        raise CatalogValidationError(message="basePrice must be a positive number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise CatalogValidationError(
            message="basePrice must be a positive number",
            details={"upstream": str(e)},
        ) from e
    if not amount.is_finite() or amount <= 0:
        raise CatalogValidationError(message="basePrice must be a positive number")
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ProductCatalog:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _ensure(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_json_atomic(self.path, [p.to_dict() for p in DEFAULT_PRODUCTS])

    def products(self) -> list[CatalogProduct]:
        try:
            self._ensure()
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Catalog file is not valid JSON; serving defaults")
            return list(DEFAULT_PRODUCTS)
        except OSError as e:
            raise StoreError(
                message="Failed to load products",
                details={"path": str(self.path), "upstream": str(e)},
            ) from e
        if not isinstance(data, list):
            return list(DEFAULT_PRODUCTS)
        return [CatalogProduct.from_dict(item) for item in data]

    def get(self, product_id: str) -> Optional[CatalogProduct]:
        wanted = product_id.strip().upper()
        for product in self.products():
            if product.id.upper() == wanted:
                return product
        return None

    def upsert(self, product_id: Any, name: Any, base_price: Any) -> CatalogProduct:
        """
        Create or replace a product by normalized id.

        Raises:
            CatalogValidationError: If the id is missing/empty or the price
                is not a positive number
        """
        if not product_id or not isinstance(product_id, str):
            raise CatalogValidationError(message="Product id is required")
        normalized_id = product_id.strip().upper()
        if not normalized_id:
            raise CatalogValidationError(message="Product id cannot be empty")

        resolved_name = name.strip() if isinstance(name, str) and name.strip() else normalized_id
        product = CatalogProduct(
            id=normalized_id,
            name=resolved_name,
            base_price=_positive_price(base_price),
        )

        products = self.products()
        for index, existing in enumerate(products):
            if existing.id.upper() == normalized_id:
                products[index] = product
                break
        else:
            products.append(product)

        try:
            write_json_atomic(self.path, [p.to_dict() for p in products])
        except OSError as e:
            raise StoreError(
                message="Failed to update products",
                details={"path": str(self.path), "upstream": str(e)},
            ) from e
        logger.info("Catalog product upserted", extra={"product_id": normalized_id})
        return product
