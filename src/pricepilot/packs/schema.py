"""
PricePilot Tier Pack Schemas

Pydantic models for validating tier pack YAML/JSON files.

A tier pack is the versioned premium table shared with the circuit and
the vault contract. ``table_version`` changes whenever the bands change;
``schema_version`` tracks the file format.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Tier Band
# =============================================================================

class TierBandSchema(BaseModel):
    """One closed price band, amounts in micro-units."""
    tier: int = Field(..., ge=1, description="Tier number used by the circuit")
    min: int = Field(..., gt=0, description="Lowest insured price (inclusive)")
    max: int = Field(..., gt=0, description="Highest insured price (inclusive)")
    premium: int = Field(..., gt=0, description="Premium in micro-units")
    label: str | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "TierBandSchema":
        if self.min > self.max:
            raise ValueError(f"tier {self.tier}: min {self.min} exceeds max {self.max}")
        return self

    model_config = {"extra": "forbid"}


# =============================================================================
# Tier Pack
# =============================================================================

class TierPackSchema(BaseModel):
    """Top-level schema for a tier pack file."""
    schema_version: str = Field(SCHEMA_VERSION, description="Schema version for compatibility")
    table_version: str = Field(..., description="Version shared with circuit and vault")
    currency: str = Field("USDC", description="Settlement token")
    decimals: int = Field(6, ge=0, description="Token decimals; amounts are in 10^-decimals units")
    description: str | None = None
    tiers: list[TierBandSchema] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_ordering(self) -> "TierPackSchema":
        """Bands must be ascending and pairwise disjoint."""
        for previous, current in zip(self.tiers, self.tiers[1:]):
            if current.min <= previous.max:
                raise ValueError(
                    f"tier {current.tier} overlaps or precedes tier {previous.tier}"
                )
        seen: set[int] = set()
        for band in self.tiers:
            if band.tier in seen:
                raise ValueError(f"duplicate tier {band.tier}")
            seen.add(band.tier)
        return self

    model_config = {"extra": "forbid"}


def validate_tier_pack(data: dict[str, Any]) -> TierPackSchema:
    """
    Validate a tier pack dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return TierPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """Major version of the pack must match SCHEMA_VERSION."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
