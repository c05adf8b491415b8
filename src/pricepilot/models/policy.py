"""
PricePilot Policy Models

Key components:
- ContractAddresses: vault / token / verifier a policy was bought against
- EligibilitySnapshot: latest oracle check attached to a policy
- PolicyRecord: one insured purchase, keyed by policyId and transactionHash

Core rule: once a policy is claimed its status, commitment and premium
never change again. PolicyStore enforces this on every write.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from ..canon import content_hash
from .commitment import CommitmentResult, PurchaseDetails, as_int
from .enums import PolicyStatus
from .oracle import EligibilityResult, OracleMerkleProof


# =============================================================================
# Contract Addresses
# =============================================================================

@dataclass(frozen=True)
class ContractAddresses:
    vault: str = ""
    token: str = ""
    verifier: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"vault": self.vault, "token": self.token, "verifier": self.verifier}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ContractAddresses:
        data = data or {}
        return cls(
            vault=data.get("vault", ""),
            token=data.get("token", ""),
            verifier=data.get("verifier", ""),
        )


# =============================================================================
# Eligibility Snapshot
# =============================================================================

@dataclass(frozen=True)
class EligibilitySnapshot:
    """
    Cached result of the most recent eligibility check.

    Superseded by every re-check. A claim cannot be submitted without one
    that carries a Merkle proof.

    Attributes:
        checked_at: Milliseconds since epoch
        drop_percentage: Percentage drop, rounded to 2 dp
        drop_amount: Drop in micro-units
        current_price: Oracle price in micro-units
        merkle_root: Catalog root the check ran against
        proof: Oracle Merkle proof for the product
        payout_amount: Amount the vault would pay, micro-units
    """
    checked_at: int
    drop_percentage: Decimal
    drop_amount: int
    current_price: int
    merkle_root: Optional[str] = None
    proof: Optional[OracleMerkleProof] = None
    payout_amount: Optional[int] = None

    @classmethod
    def from_result(cls, result: EligibilityResult, checked_at: int) -> EligibilitySnapshot:
        return cls(
            checked_at=checked_at,
            drop_percentage=result.drop_percentage,
            drop_amount=result.drop_amount,
            current_price=result.current_price,
            merkle_root=result.merkle_root,
            proof=result.proof,
            payout_amount=result.payout_amount,
        )

    @property
    def has_proof(self) -> bool:
        return self.proof is not None and self.merkle_root is not None

    def fingerprint(self) -> str:
        """Content hash of everything except ``checkedAt``."""
        data = self.to_dict()
        data.pop("checkedAt", None)
        return content_hash(data)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "checkedAt": self.checked_at,
            "dropPercentage": float(self.drop_percentage),
            "dropAmount": str(self.drop_amount),
            "currentPrice": str(self.current_price),
        }
        if self.merkle_root is not None:
            result["merkleRoot"] = self.merkle_root
        if self.proof is not None:
            result["proof"] = self.proof.to_dict()
        if self.payout_amount is not None:
            result["payoutAmount"] = str(self.payout_amount)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EligibilitySnapshot:
        proof = data.get("proof")
        payout = data.get("payoutAmount")
        return cls(
            checked_at=int(data.get("checkedAt", 0)),
            drop_percentage=Decimal(str(data.get("dropPercentage", 0))),
            drop_amount=as_int(data.get("dropAmount", 0)),
            current_price=as_int(data.get("currentPrice", 0)),
            merkle_root=data.get("merkleRoot"),
            proof=OracleMerkleProof.from_dict(proof) if proof else None,
            payout_amount=as_int(payout) if payout is not None else None,
        )


# =============================================================================
# Policy Record
# =============================================================================

@dataclass(frozen=True)
class PolicyRecord:
    """
    An insured purchase as the wallet owner sees it.

    Created once the ledger confirms ``buyPolicy``. Only eligibility checks
    (status, snapshot) and claim settlement (claimed, claimTxHash,
    claimedAt) mutate it afterwards.
    """
    policy_id: str
    transaction_hash: str
    block_number: int
    policy_purchase_date: int            # unix seconds
    purchase_details: PurchaseDetails
    secret_commitment: str
    premium: int
    tier: int
    contracts: ContractAddresses = field(default_factory=ContractAddresses)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    network: str = "unknown"
    status: PolicyStatus = PolicyStatus.ACTIVE
    eligibility: Optional[EligibilitySnapshot] = None
    claim_tx_hash: Optional[str] = None
    claimed_at: Optional[int] = None

    @classmethod
    def from_purchase(
        cls,
        policy_id: str,
        transaction_hash: str,
        block_number: int,
        commitment: CommitmentResult,
        contracts: ContractAddresses,
        network: str,
        now: Optional[datetime] = None,
    ) -> PolicyRecord:
        """Factory for a freshly confirmed purchase."""
        now = now or datetime.now(timezone.utc)
        return cls(
            policy_id=policy_id,
            transaction_hash=transaction_hash,
            block_number=block_number,
            policy_purchase_date=int(now.timestamp()),
            purchase_details=commitment.details,
            secret_commitment=commitment.commitment,
            premium=commitment.premium,
            tier=commitment.tier,
            contracts=contracts,
            created_at=now.isoformat(),
            network=network,
            status=PolicyStatus.ACTIVE,
        )

    @property
    def is_claimed(self) -> bool:
        return self.status is PolicyStatus.CLAIMED

    @property
    def product_id(self) -> str:
        return self.purchase_details.product_id or ""

    def evolve(self, **changes: Any) -> PolicyRecord:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase shape."""
        result: dict[str, Any] = {
            "policyId": self.policy_id,
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "policyPurchaseDate": self.policy_purchase_date,
            "purchaseDetails": self.purchase_details.to_dict(),
            "secretCommitment": self.secret_commitment,
            "premium": str(self.premium),
            "tier": self.tier,
            "contracts": self.contracts.to_dict(),
            "createdAt": self.created_at,
            "network": self.network,
            "status": self.status.value,
        }
        if self.eligibility is not None:
            result["eligibility"] = self.eligibility.to_dict()
        if self.claim_tx_hash is not None:
            result["claimTxHash"] = self.claim_tx_hash
        if self.claimed_at is not None:
            result["claimedAt"] = self.claimed_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyRecord:
        eligibility = data.get("eligibility")
        claimed_at = data.get("claimedAt")
        return cls(
            policy_id=str(data["policyId"]),
            transaction_hash=data["transactionHash"],
            block_number=int(data.get("blockNumber", 0)),
            policy_purchase_date=int(data["policyPurchaseDate"]),
            purchase_details=PurchaseDetails.from_dict(data["purchaseDetails"]),
            secret_commitment=data["secretCommitment"],
            premium=as_int(data["premium"]),
            tier=int(data["tier"]),
            contracts=ContractAddresses.from_dict(data.get("contracts")),
            created_at=data.get("createdAt", ""),
            network=data.get("network", "unknown"),
            status=PolicyStatus(data.get("status") or PolicyStatus.ACTIVE.value),
            eligibility=EligibilitySnapshot.from_dict(eligibility) if eligibility else None,
            claim_tx_hash=data.get("claimTxHash"),
            claimed_at=int(claimed_at) if claimed_at is not None else None,
        )
