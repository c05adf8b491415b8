"""Persistence for policies, commitments and the product catalog."""
from __future__ import annotations

from .backends import JsonFileBackend, MemoryBackend, StoreBackend, write_json_atomic
from .catalog import ProductCatalog
from .policy_store import (
    PolicyStore,
    check_mutation,
    commitments_key,
    merge_policy_dict,
    policies_key,
)

__all__ = [
    "JsonFileBackend",
    "MemoryBackend",
    "StoreBackend",
    "write_json_atomic",
    "ProductCatalog",
    "PolicyStore",
    "check_mutation",
    "commitments_key",
    "merge_policy_dict",
    "policies_key",
]
