"""
PricePilot Oracle Models

Domain views of the price oracle's catalog and Merkle proofs, built from
validated payloads (see engine.oracle_schemas).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class OraclePrice:
    id: str
    name: str
    current_price: int       # micro-units
    base_price: int
    change: float = 0.0


@dataclass(frozen=True)
class OraclePriceCatalog:
    prices: tuple[OraclePrice, ...]
    merkle_root: str
    timestamp: int


@dataclass(frozen=True)
class OracleMerkleProof:
    """
    Inclusion proof for one product's price leaf.

    Attributes:
        leaf: Leaf hash as published
        siblings: Sibling hashes, leaf level first
        path_indices: 0 when the running node is the left child
        root: Root the path should reproduce
        current_price: Price committed in the leaf (micro-units)
        product_hash: Poseidon product hash used in the leaf
        product_id: Oracle product id
        leaf_big_int: Decimal form of the leaf, preferred as circuit input
    """
    leaf: str
    siblings: tuple[str, ...]
    path_indices: tuple[int, ...]
    root: str
    current_price: int
    product_hash: str
    product_id: str
    leaf_big_int: Optional[str] = None
    product_name: Optional[str] = None

    @property
    def leaf_value(self) -> str:
        return self.leaf_big_int or self.leaf

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "leaf": self.leaf,
            "siblings": list(self.siblings),
            "pathIndices": list(self.path_indices),
            "root": self.root,
            "currentPrice": self.current_price,
            "productHash": self.product_hash,
            "productId": self.product_id,
        }
        if self.leaf_big_int is not None:
            result["leafBigInt"] = self.leaf_big_int
        if self.product_name is not None:
            result["productName"] = self.product_name
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OracleMerkleProof:
        return cls(
            leaf=str(data["leaf"]),
            siblings=tuple(str(s) for s in data.get("siblings", [])),
            path_indices=tuple(int(i) for i in data.get("pathIndices", [])),
            root=str(data["root"]),
            current_price=int(data["currentPrice"]),
            product_hash=str(data.get("productHash", "")),
            product_id=str(data.get("productId", "")),
            leaf_big_int=data.get("leafBigInt"),
            product_name=data.get("productName"),
        )


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of comparing an insured price with the oracle's current price."""
    eligible: bool
    drop_percentage: Decimal          # rounded to 2 dp
    drop_amount: int
    current_price: int
    merkle_root: str
    proof: OracleMerkleProof
    payout_amount: int
    matched_product_id: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)
