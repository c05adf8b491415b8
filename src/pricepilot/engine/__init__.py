"""
PricePilot Engine

The commitment-and-claim protocol:

- CommitmentBuilder: invoice -> commitment + private opening
- OracleClient: price catalog, Merkle proofs, drop evaluation
- EligibilityEvaluator: oracle check -> snapshot + status on the policy
- ClaimProofBuilder: policy + oracle proof -> Groth16 claim proof
- PolicyPurchaseCoordinator / ClaimSubmissionCoordinator: end-to-end flows
"""
from __future__ import annotations

from .commitment_builder import CommitmentBuilder, date_to_unix_seconds, secure_salt
from .coordinator import (
    ClaimProgress,
    ClaimSubmissionCoordinator,
    PolicyPurchaseCoordinator,
)
from .eligibility import EligibilityEvaluator
from .ledger import Ledger
from .oracle_client import OracleClient, drop_percentage, is_eligible, match_product
from .proof_builder import (
    ArtifactCache,
    CircuitArtifacts,
    ClaimProofBuilder,
    Prover,
    SnarkjsProver,
)

__all__ = [
    "CommitmentBuilder",
    "date_to_unix_seconds",
    "secure_salt",
    "ClaimProgress",
    "ClaimSubmissionCoordinator",
    "PolicyPurchaseCoordinator",
    "EligibilityEvaluator",
    "Ledger",
    "OracleClient",
    "drop_percentage",
    "is_eligible",
    "match_product",
    "ArtifactCache",
    "CircuitArtifacts",
    "ClaimProofBuilder",
    "Prover",
    "SnarkjsProver",
]
