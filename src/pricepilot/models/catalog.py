"""Product catalog entries served to the oracle side-channel."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CatalogProduct:
    id: str
    name: str
    base_price: int          # micro-units

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "basePrice": self.base_price}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogProduct:
        return cls(id=data["id"], name=data["name"], base_price=int(data["basePrice"]))


DEFAULT_PRODUCTS: tuple[CatalogProduct, ...] = (
    CatalogProduct(id="B0F6PD51CY", name="WISHKEY 145 Pieces Art Set", base_price=10_180_000),
    CatalogProduct(id="MACBOOK", name="MacBook Pro M3", base_price=2_499_000_000),
    CatalogProduct(id="IPADAIR", name="iPad Air", base_price=599_000_000),
    CatalogProduct(id="GALAXY24", name="Samsung Galaxy S24", base_price=999_000_000),
    CatalogProduct(id="XPSLAPTOP", name="Dell XPS 15", base_price=1_899_000_000),
    CatalogProduct(id="SONYTVX90", name="Sony X90L TV", base_price=1_299_000_000),
    CatalogProduct(id="AIRPODS", name="AirPods Pro", base_price=249_000_000),
    CatalogProduct(id="SWITCH", name="Nintendo Switch OLED", base_price=349_000_000),
)
