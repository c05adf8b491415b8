"""
PricePilot: Privacy-Preserving Price-Drop Protection

A buyer commits to a purchase (order, price, date, product, coverage tier)
with a Poseidon commitment that reveals nothing on-chain. When the price
oracle's Merkle-committed feed shows the product dropped past the
threshold, the buyer proves in zero knowledge that an eligible commitment
exists and collects the payout.

Core Components:
- FieldEncoder / PoseidonHasher: field-canonical hashing
- TierTable: price bands -> coverage tier + premium
- CommitmentBuilder: invoice -> commitment + private opening
- OracleClient / EligibilityEvaluator: oracle prices and drop checks
- ClaimProofBuilder: Groth16 claim proofs via snarkjs
- PolicyStore: per-wallet policy and commitment records
- ClaimSubmissionCoordinator: check -> prove -> verify ledger -> claim

Example Usage:
    from pricepilot import (
        PoseidonHasher, CommitmentBuilder, InvoiceData,
    )

    builder = CommitmentBuilder(PoseidonHasher())
    result = builder.build(InvoiceData(
        order_number="A1",
        purchase_price_usd=Decimal("199.99"),
        purchase_date=date(2025, 1, 15),
        product_id="X1",
    ))
    print(result.commitment, result.tier, result.premium)
"""
from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    AlreadyClaimedError,
    ArtifactError,
    CatalogValidationError,
    ClaimError,
    FieldEncodingError,
    HasherError,
    InvalidInvoiceError,
    InvalidMerkleProofError,
    InvalidPolicyIdError,
    LedgerError,
    MissingEligibilityError,
    NotEligibleError,
    OracleError,
    OracleRequestError,
    OracleResponseError,
    OutOfRangeError,
    OwnershipError,
    PolicyNotFoundError,
    PolicyStateError,
    PricePilotError,
    ProductNotFoundError,
    ProofGenerationError,
    RandomnessError,
    StaleRootError,
    StoreError,
    TierPackError,
)

# =============================================================================
# Config
# =============================================================================
from .config import PricePilotConfig

# =============================================================================
# Models
# =============================================================================
from .models import (
    DEFAULT_TIER_TABLE,
    ClaimPhase,
    ClaimProof,
    CommitmentRecord,
    CommitmentResult,
    ContractAddresses,
    EligibilityResult,
    EligibilitySnapshot,
    InvoiceData,
    OracleMerkleProof,
    PolicyRecord,
    PolicyStatus,
    PurchaseDetails,
    TierBoundary,
    TierTable,
)

# =============================================================================
# Crypto
# =============================================================================
from .crypto import FIELD_MODULUS, FieldEncoder, PoseidonHasher, to_hex32

# =============================================================================
# Engine
# =============================================================================
from .engine import (
    ArtifactCache,
    ClaimProofBuilder,
    ClaimSubmissionCoordinator,
    CommitmentBuilder,
    EligibilityEvaluator,
    OracleClient,
    PolicyPurchaseCoordinator,
    SnarkjsProver,
)

# =============================================================================
# Store
# =============================================================================
from .store import JsonFileBackend, MemoryBackend, PolicyStore, ProductCatalog

__all__ = [
    "__version__",
    # Exceptions
    "PricePilotError",
    "OutOfRangeError",
    "RandomnessError",
    "FieldEncodingError",
    "InvalidInvoiceError",
    "HasherError",
    "TierPackError",
    "OracleError",
    "OracleRequestError",
    "OracleResponseError",
    "ProductNotFoundError",
    "InvalidMerkleProofError",
    "ProofGenerationError",
    "ArtifactError",
    "ClaimError",
    "MissingEligibilityError",
    "NotEligibleError",
    "InvalidPolicyIdError",
    "StaleRootError",
    "OwnershipError",
    "AlreadyClaimedError",
    "LedgerError",
    "StoreError",
    "PolicyNotFoundError",
    "PolicyStateError",
    "CatalogValidationError",
    # Config
    "PricePilotConfig",
    # Models
    "DEFAULT_TIER_TABLE",
    "ClaimPhase",
    "ClaimProof",
    "CommitmentRecord",
    "CommitmentResult",
    "ContractAddresses",
    "EligibilityResult",
    "EligibilitySnapshot",
    "InvoiceData",
    "OracleMerkleProof",
    "PolicyRecord",
    "PolicyStatus",
    "PurchaseDetails",
    "TierBoundary",
    "TierTable",
    # Crypto
    "FIELD_MODULUS",
    "FieldEncoder",
    "PoseidonHasher",
    "to_hex32",
    # Engine
    "ArtifactCache",
    "ClaimProofBuilder",
    "ClaimSubmissionCoordinator",
    "CommitmentBuilder",
    "EligibilityEvaluator",
    "OracleClient",
    "PolicyPurchaseCoordinator",
    "SnarkjsProver",
    # Store
    "JsonFileBackend",
    "MemoryBackend",
    "PolicyStore",
    "ProductCatalog",
]
