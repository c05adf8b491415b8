"""
PricePilot Tier Packs

Versioned premium tables loaded from YAML/JSON:

    from pricepilot.packs import load_tier_pack

    table = load_tier_pack()            # shipped tiers_v1.yaml
    quote = table.classify(199_990_000)
"""
from __future__ import annotations

from .loader import DEFAULT_PACK_PATH, load_tier_pack, load_tier_pack_from_string
from .schema import SCHEMA_VERSION, TierBandSchema, TierPackSchema, validate_tier_pack

__all__ = [
    "DEFAULT_PACK_PATH",
    "load_tier_pack",
    "load_tier_pack_from_string",
    "SCHEMA_VERSION",
    "TierBandSchema",
    "TierPackSchema",
    "validate_tier_pack",
]
