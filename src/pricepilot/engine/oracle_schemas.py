"""
Oracle payload schemas.

Pydantic models for the price oracle's JSON responses. Payloads are
validated here and converted to frozen domain models before anything
downstream sees them; unknown keys are ignored.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.oracle import OracleMerkleProof, OraclePrice, OraclePriceCatalog


def _stringify(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class OraclePriceSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    current_price: int = Field(..., ge=0, alias="currentPrice")
    base_price: int = Field(0, ge=0, alias="basePrice")
    change: float = 0.0

    def to_domain(self) -> OraclePrice:
        return OraclePrice(
            id=self.id,
            name=self.name,
            current_price=self.current_price,
            base_price=self.base_price,
            change=self.change,
        )


class OraclePricesSchema(BaseModel):
    """GET /api/prices"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    prices: list[OraclePriceSchema]
    merkle_root: str = Field(..., min_length=1, alias="merkleRoot")
    timestamp: int = 0

    @field_validator("merkle_root", mode="before")
    @classmethod
    def stringify_root(cls, v: Any) -> Any:
        return _stringify(v)

    def to_domain(self) -> OraclePriceCatalog:
        return OraclePriceCatalog(
            prices=tuple(p.to_domain() for p in self.prices),
            merkle_root=self.merkle_root,
            timestamp=self.timestamp,
        )


class OracleMerkleProofSchema(BaseModel):
    """GET /api/merkle-proof/{productId}"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    leaf: str = Field(..., min_length=1)
    siblings: list[str]
    path_indices: list[int] = Field(..., alias="pathIndices")
    root: str = Field(..., min_length=1)
    current_price: int = Field(..., ge=0, alias="currentPrice")
    product_hash: str = Field("", alias="productHash")
    product_id: str = Field("", alias="productId")
    leaf_big_int: Optional[str] = Field(None, alias="leafBigInt")
    product_name: Optional[str] = Field(None, alias="productName")

    @field_validator("leaf", "root", "product_hash", "leaf_big_int", mode="before")
    @classmethod
    def stringify_field(cls, v: Any) -> Any:
        return _stringify(v)

    @field_validator("siblings", mode="before")
    @classmethod
    def stringify_siblings(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_stringify(s) for s in v]
        return v

    @field_validator("path_indices")
    @classmethod
    def validate_indices(cls, v: list[int]) -> list[int]:
        if any(i not in (0, 1) for i in v):
            raise ValueError("path indices must be 0 or 1")
        return v

    @model_validator(mode="after")
    def validate_path_length(self) -> "OracleMerkleProofSchema":
        if len(self.siblings) != len(self.path_indices):
            raise ValueError("siblings and pathIndices must have the same length")
        return self

    def to_domain(self) -> OracleMerkleProof:
        return OracleMerkleProof(
            leaf=self.leaf,
            siblings=tuple(self.siblings),
            path_indices=tuple(self.path_indices),
            root=self.root,
            current_price=self.current_price,
            product_hash=self.product_hash,
            product_id=self.product_id,
            leaf_big_int=self.leaf_big_int,
            product_name=self.product_name,
        )
