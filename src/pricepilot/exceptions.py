"""
PricePilot Exception Hierarchy

Domain-specific exceptions for the price-drop protection engine.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: PP_<CATEGORY>_<SPECIFIC>

Retry semantics are part of each error kind:
- OutOfRangeError, RandomnessError, OwnershipError, AlreadyClaimedError
  are fatal for the attempt that raised them.
- ProductNotFoundError, ProofGenerationError and OracleRequestError may be
  retried (after a catalog refresh / as-is).
- StaleRootError is recovered by re-running the eligibility check.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class PricePilotError(Exception):
    """
    Base exception for all PricePilot errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (PP_*)
        details: Additional context about the error
        policy_id: Associated policy ID if applicable
    """
    message: str
    code: str = "PP_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    policy_id: Optional[str] = None
    retryable: bool = False

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.policy_id:
            parts.append(f"(policy: {self.policy_id})")
        return " ".join(parts)

    @property
    def upstream_message(self) -> Optional[str]:
        """Original message from the collaborator that failed, if any."""
        return self.details.get("upstream")

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        if self.policy_id:
            result["policy_id"] = self.policy_id
        return result


# =============================================================================
# Commitment Errors
# =============================================================================

@dataclass
class OutOfRangeError(PricePilotError):
    """Price falls outside every coverage tier."""
    code: str = "PP_TIER_OUT_OF_RANGE"


@dataclass
class RandomnessError(PricePilotError):
    """Secure randomness unavailable; commitment creation must abort."""
    code: str = "PP_RANDOMNESS_UNAVAILABLE"


@dataclass
class FieldEncodingError(PricePilotError):
    """Value cannot be encoded as a field element (strict mode)."""
    code: str = "PP_FIELD_ENCODING_ERROR"


@dataclass
class InvalidInvoiceError(PricePilotError):
    """Invoice data is incomplete or malformed."""
    code: str = "PP_INVALID_INVOICE"


@dataclass
class HasherError(PricePilotError):
    """The Poseidon backend failed to produce a digest."""
    code: str = "PP_HASHER_ERROR"


# =============================================================================
# Tier Pack Errors
# =============================================================================

@dataclass
class TierPackError(PricePilotError):
    """Tier pack could not be loaded or failed validation."""
    code: str = "PP_TIER_PACK_ERROR"


# =============================================================================
# Oracle Errors
# =============================================================================

@dataclass
class OracleError(PricePilotError):
    """Base class for price oracle failures."""
    code: str = "PP_ORACLE_ERROR"


@dataclass
class OracleRequestError(OracleError):
    """Oracle answered with a non-2xx status; message is the body text."""
    code: str = "PP_ORACLE_REQUEST_FAILED"
    retryable: bool = True


@dataclass
class OracleResponseError(OracleError):
    """Oracle payload did not match the expected shape."""
    code: str = "PP_ORACLE_MALFORMED_RESPONSE"


@dataclass
class ProductNotFoundError(OracleError):
    """Product is not listed in the oracle catalog."""
    code: str = "PP_PRODUCT_NOT_FOUND"
    retryable: bool = True


@dataclass
class InvalidMerkleProofError(OracleError):
    """Merkle path does not reproduce the stated root."""
    code: str = "PP_INVALID_MERKLE_PROOF"


# =============================================================================
# Proof Errors
# =============================================================================

@dataclass
class ProofGenerationError(PricePilotError):
    """Prover failed to produce a proof."""
    code: str = "PP_PROOF_GENERATION_FAILED"
    retryable: bool = True


@dataclass
class ArtifactError(PricePilotError):
    """Circuit artifacts are missing or unreadable."""
    code: str = "PP_ARTIFACT_ERROR"


# =============================================================================
# Claim Errors
# =============================================================================

@dataclass
class ClaimError(PricePilotError):
    """Base class for claim submission failures."""
    code: str = "PP_CLAIM_ERROR"


@dataclass
class MissingEligibilityError(ClaimError):
    """No eligibility snapshot (with proof) recorded for the policy."""
    code: str = "PP_CLAIM_NOT_CHECKED"


@dataclass
class NotEligibleError(ClaimError):
    """Latest eligibility check found no qualifying price drop."""
    code: str = "PP_CLAIM_NOT_ELIGIBLE"


@dataclass
class InvalidPolicyIdError(ClaimError):
    """Policy ID is not a non-negative integer string."""
    code: str = "PP_CLAIM_INVALID_POLICY_ID"


@dataclass
class StaleRootError(ClaimError):
    """Ledger price root differs from the checked snapshot root."""
    code: str = "PP_CLAIM_STALE_ROOT"
    retryable: bool = True


@dataclass
class OwnershipError(ClaimError):
    """Policy is registered to a different wallet."""
    code: str = "PP_CLAIM_NOT_OWNER"


@dataclass
class AlreadyClaimedError(ClaimError):
    """Policy has already been paid out."""
    code: str = "PP_CLAIM_ALREADY_CLAIMED"


@dataclass
class LedgerError(ClaimError):
    """Ledger collaborator rejected or failed a call."""
    code: str = "PP_LEDGER_ERROR"


# =============================================================================
# Store Errors
# =============================================================================

@dataclass
class StoreError(PricePilotError):
    """Persistent store failure."""
    code: str = "PP_STORE_ERROR"


@dataclass
class PolicyNotFoundError(StoreError):
    """Policy record not found for the wallet."""
    code: str = "PP_POLICY_NOT_FOUND"


@dataclass
class PolicyStateError(StoreError):
    """Illegal status transition or mutation of a claimed policy."""
    code: str = "PP_POLICY_STATE_ERROR"


@dataclass
class CatalogValidationError(StoreError):
    """Product catalog upsert rejected (empty id or non-positive price)."""
    code: str = "PP_CATALOG_INVALID"
