"""
PricePilot Tier Pack Loader

Loads and validates tier packs from YAML or JSON files and converts them
to the domain TierTable.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from ..exceptions import TierPackError
from ..models.tiers import TierBoundary, TierTable
from .schema import SCHEMA_VERSION, TierPackSchema, check_schema_version, validate_tier_pack

DEFAULT_PACK_PATH = Path(__file__).with_name("tiers_v1.yaml")


def _convert_tier_pack(schema: TierPackSchema) -> TierTable:
    return TierTable(
        boundaries=tuple(
            TierBoundary(min=band.min, max=band.max, tier=band.tier, premium=band.premium)
            for band in schema.tiers
        ),
        version=schema.table_version,
    )


def _load_file(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _build(data: Any, source: str, strict_version: bool) -> TierTable:
    if not isinstance(data, dict):
        raise TierPackError(
            message="Tier pack must be a mapping",
            details={"path": source},
        )

    if strict_version and not check_schema_version(data):
        pack_version = data.get("schema_version", "unknown")
        raise TierPackError(
            message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
            details={"pack_version": pack_version, "expected_version": SCHEMA_VERSION},
        )

    try:
        schema = validate_tier_pack(data)
    except ValidationError as e:
        raise TierPackError(
            message=f"Tier pack validation failed: {e.error_count()} errors",
            details={"errors": e.errors(include_url=False), "path": source},
        ) from e

    return _convert_tier_pack(schema)


def load_tier_pack(path: Union[str, Path] = DEFAULT_PACK_PATH, strict_version: bool = True) -> TierTable:
    """
    Load a tier pack from a file.

    Raises:
        TierPackError: If the file cannot be read, has an incompatible
            schema version, or fails validation
    """
    path = Path(path)
    try:
        data = _load_file(path)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise TierPackError(
            message=f"Failed to load tier pack: {e}",
            details={"path": str(path), "upstream": str(e)},
        ) from e
    return _build(data, str(path), strict_version)


def load_tier_pack_from_string(content: str, format: str = "yaml") -> TierTable:
    try:
        data = json.loads(content) if format.lower() == "json" else yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise TierPackError(
            message=f"Failed to parse tier pack: {e}",
            details={"upstream": str(e)},
        ) from e
    return _build(data, "<string>", strict_version=True)
