"""
PricePilot Models

Domain models for the price-drop protection engine:

    from pricepilot.models import (
        # Enums
        PolicyStatus, ClaimPhase,
        # Tiers
        TierBoundary, TierTable, TierQuote, DEFAULT_TIER_TABLE,
        # Commitment
        InvoiceData, PurchaseDetails, CommitmentResult, CommitmentRecord,
        # Oracle
        OraclePrice, OraclePriceCatalog, OracleMerkleProof, EligibilityResult,
        # Policy
        ContractAddresses, EligibilitySnapshot, PolicyRecord,
        # Proof
        CircuitInputs, Groth16Proof, ClaimProof,
        # Ledger
        LedgerPolicy, TransactionReceipt,
        # Catalog
        CatalogProduct, DEFAULT_PRODUCTS,
    )
"""
from __future__ import annotations

from .catalog import DEFAULT_PRODUCTS, CatalogProduct
from .commitment import (
    CommitmentRecord,
    CommitmentResult,
    InvoiceData,
    PurchaseDetails,
)
from .enums import ClaimPhase, PolicyStatus
from .ledger import LedgerPolicy, TransactionReceipt
from .oracle import (
    EligibilityResult,
    OracleMerkleProof,
    OraclePrice,
    OraclePriceCatalog,
)
from .policy import ContractAddresses, EligibilitySnapshot, PolicyRecord
from .proof import CircuitInputs, ClaimProof, Groth16Proof
from .tiers import DEFAULT_TIER_TABLE, TierBoundary, TierQuote, TierTable

__all__ = [
    # Enums
    "PolicyStatus",
    "ClaimPhase",
    # Tiers
    "TierBoundary",
    "TierTable",
    "TierQuote",
    "DEFAULT_TIER_TABLE",
    # Commitment
    "InvoiceData",
    "PurchaseDetails",
    "CommitmentResult",
    "CommitmentRecord",
    # Oracle
    "OraclePrice",
    "OraclePriceCatalog",
    "OracleMerkleProof",
    "EligibilityResult",
    # Policy
    "ContractAddresses",
    "EligibilitySnapshot",
    "PolicyRecord",
    # Proof
    "CircuitInputs",
    "Groth16Proof",
    "ClaimProof",
    # Ledger
    "LedgerPolicy",
    "TransactionReceipt",
    # Catalog
    "CatalogProduct",
    "DEFAULT_PRODUCTS",
]
