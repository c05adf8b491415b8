"""
Coverage tier table.

Each TierBoundary is a closed interval of invoice prices in micro-units
mapped to a tier number and a fixed premium. The table is co-versioned
with the circuit and the vault contract; it is configuration, not logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import OutOfRangeError, TierPackError


@dataclass(frozen=True)
class TierBoundary:
    min: int
    max: int
    tier: int
    premium: int

    def contains(self, price_micros: int) -> bool:
        return self.min <= price_micros <= self.max


@dataclass(frozen=True)
class TierQuote:
    tier: int
    premium: int


@dataclass(frozen=True)
class TierTable:
    """
    Ordered, pairwise-disjoint closed price bands.

    Gaps between bands are allowed; a price in a gap is out of range just
    like a price below the first band or above the last one.
    """
    boundaries: tuple[TierBoundary, ...]
    version: str = "1"
    _by_tier: dict[int, TierBoundary] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        errors = []
        previous: Optional[TierBoundary] = None
        for boundary in self.boundaries:
            if boundary.min <= 0:
                errors.append(f"tier {boundary.tier}: min must be positive")
            if boundary.min > boundary.max:
                errors.append(f"tier {boundary.tier}: min exceeds max")
            if boundary.premium <= 0:
                errors.append(f"tier {boundary.tier}: premium must be positive")
            if previous is not None and boundary.min <= previous.max:
                errors.append(f"tier {boundary.tier} overlaps or precedes tier {previous.tier}")
            if boundary.tier in self._by_tier:
                errors.append(f"duplicate tier {boundary.tier}")
            self._by_tier[boundary.tier] = boundary
            previous = boundary
        if not self.boundaries:
            errors.append("table has no boundaries")
        if errors:
            raise TierPackError(
                message="Invalid tier table",
                details={"errors": errors, "version": self.version},
            )

    @property
    def max_insurable(self) -> int:
        return self.boundaries[-1].max

    def classify(self, price_micros: int) -> TierQuote:
        """Return the tier and premium whose band contains the price."""
        for boundary in self.boundaries:
            if boundary.contains(price_micros):
                return TierQuote(tier=boundary.tier, premium=boundary.premium)
        raise OutOfRangeError(
            message=f"Invoice price {price_micros} outside valid tier ranges",
            details={"price_micros": price_micros, "table_version": self.version},
        )

    def get_tier(self, tier: int) -> Optional[TierBoundary]:
        return self._by_tier.get(tier)


DEFAULT_TIER_TABLE = TierTable(
    boundaries=(
        TierBoundary(min=1_000_000, max=99_999_999, tier=1, premium=1_000_000),            # $1-99.99 -> $1
        TierBoundary(min=100_000_000, max=499_000_000, tier=2, premium=3_000_000),         # $100-499 -> $3
        TierBoundary(min=500_000_000, max=999_000_000, tier=3, premium=7_000_000),         # $500-999 -> $7
        TierBoundary(min=1_000_000_000, max=1_999_000_000, tier=4, premium=13_000_000),    # $1000-1999 -> $13
        TierBoundary(min=2_000_000_000, max=10_000_000_000, tier=5, premium=20_000_000),   # $2000-10000 -> $20
    ),
    version="1",
)
