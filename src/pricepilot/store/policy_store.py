"""
PricePilot Policy Store

Per-wallet collections of policy and commitment records:

    policies_<address>     JSON array of PolicyRecord dicts
    commitments_<address>  JSON array of CommitmentRecord dicts

Addresses are lowercased before they become keys. The store is the only
writer; it rejects duplicate transactions and commitments, illegal status
transitions, and any change to a claimed policy's status, commitment or
premium.

Reads and writes are not serialized here. Callers confine mutations of one
policy to one task (see ClaimSubmissionCoordinator's per-policy locks).
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..exceptions import PolicyNotFoundError, PolicyStateError
from ..formatting import normalize_address
from ..models.commitment import CommitmentRecord
from ..models.policy import PolicyRecord
from .backends import MemoryBackend, StoreBackend

logger = logging.getLogger(__name__)

POLICIES_PREFIX = "policies_"
COMMITMENTS_PREFIX = "commitments_"


def policies_key(address: str) -> str:
    return POLICIES_PREFIX + normalize_address(address)


def commitments_key(address: str) -> str:
    return COMMITMENTS_PREFIX + normalize_address(address)


def merge_policy_dict(current: dict[str, Any], partial: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-merge ``partial`` into ``current``; ``eligibility`` merges one
    level deeper so fields the partial does not mention survive.
    """
    merged = {**current, **partial}
    if partial.get("eligibility"):
        merged["eligibility"] = {**(current.get("eligibility") or {}), **partial["eligibility"]}
    else:
        if "eligibility" in current:
            merged["eligibility"] = current["eligibility"]
        else:
            merged.pop("eligibility", None)
    return merged


def check_mutation(before: PolicyRecord, after: PolicyRecord) -> None:
    """Raise PolicyStateError if ``after`` is not a legal successor of ``before``."""
    if after.policy_id != before.policy_id or after.transaction_hash != before.transaction_hash:
        raise PolicyStateError(
            message="Policy identity cannot change",
            policy_id=before.policy_id,
        )

    if before.is_claimed:
        changed = [
            name for name, old, new in (
                ("status", before.status, after.status),
                ("secretCommitment", before.secret_commitment, after.secret_commitment),
                ("premium", before.premium, after.premium),
            )
            if old != new
        ]
        if changed:
            raise PolicyStateError(
                message=f"Claimed policy is final; cannot change {', '.join(changed)}",
                policy_id=before.policy_id,
                details={"fields": changed},
            )
        return

    if after.status != before.status and not before.status.can_transition_to(after.status):
        raise PolicyStateError(
            message=f"Illegal status transition {before.status.value} -> {after.status.value}",
            policy_id=before.policy_id,
            details={"from": before.status.value, "to": after.status.value},
        )


class PolicyStore:
    """
    Durable per-wallet policy collection.

    Usage:
        store = PolicyStore(JsonFileBackend(config.storage.policies_dir))
        store.save(address, record)
        store.merge(address, record.policy_id, {"status": "eligible"})
    """

    def __init__(self, backend: Optional[StoreBackend] = None):
        self.backend = backend or MemoryBackend()

    # -------------------------------------------------------------------------
    # Policies
    # -------------------------------------------------------------------------

    def list_policies(self, address: str) -> list[PolicyRecord]:
        return [PolicyRecord.from_dict(item) for item in self.backend.read(policies_key(address))]

    def get(self, address: str, policy_id: str) -> Optional[PolicyRecord]:
        for item in self.backend.read(policies_key(address)):
            if str(item.get("policyId")) == policy_id:
                return PolicyRecord.from_dict(item)
        return None

    def require(self, address: str, policy_id: str) -> PolicyRecord:
        record = self.get(address, policy_id)
        if record is None:
            raise PolicyNotFoundError(
                message="Policy not found for wallet",
                policy_id=policy_id,
                details={"address": normalize_address(address)},
            )
        return record

    def save(self, address: str, record: PolicyRecord) -> bool:
        """
        Append a policy. A record whose transactionHash is already stored is
        skipped (returns False).
        """
        key = policies_key(address)
        items = self.backend.read(key)
        if any(item.get("transactionHash") == record.transaction_hash for item in items):
            logger.info(
                "Policy already exists, skipping save",
                extra={"policy_id": record.policy_id},
            )
            return False
        items.append(record.to_dict())
        self.backend.write(key, items)
        logger.info("Policy saved", extra={"policy_id": record.policy_id})
        return True

    def update(
        self,
        address: str,
        policy_id: str,
        mutator: Callable[[PolicyRecord], PolicyRecord],
    ) -> Optional[PolicyRecord]:
        """Apply a pure transformation and persist it; None if the policy is unknown."""
        key = policies_key(address)
        items = self.backend.read(key)
        for index, item in enumerate(items):
            if str(item.get("policyId")) != policy_id:
                continue
            before = PolicyRecord.from_dict(item)
            after = mutator(before)
            check_mutation(before, after)
            items[index] = after.to_dict()
            self.backend.write(key, items)
            return after
        return None

    def merge(self, address: str, policy_id: str, partial: dict[str, Any]) -> Optional[PolicyRecord]:
        """Merge camelCase fields into a stored policy; None if the policy is unknown."""
        def apply(record: PolicyRecord) -> PolicyRecord:
            return PolicyRecord.from_dict(merge_policy_dict(record.to_dict(), partial))
        return self.update(address, policy_id, apply)

    # -------------------------------------------------------------------------
    # Commitments
    # -------------------------------------------------------------------------

    def list_commitments(self, address: str) -> list[CommitmentRecord]:
        return [CommitmentRecord.from_dict(item) for item in self.backend.read(commitments_key(address))]

    def save_commitment(self, address: str, record: CommitmentRecord) -> bool:
        key = commitments_key(address)
        items = self.backend.read(key)
        if any(item.get("commitment") == record.commitment for item in items):
            logger.info("Commitment already exists, skipping save")
            return False
        items.append(record.to_dict())
        self.backend.write(key, items)
        logger.info(
            "Commitment saved",
            extra={"commitment_short": record.commitment[:10] + "..."},
        )
        return True

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def wipe(self, address: str) -> None:
        """Remove every policy and commitment for the wallet."""
        self.backend.delete(policies_key(address))
        self.backend.delete(commitments_key(address))
        logger.info("Cleared policies and commitments", extra={"address": normalize_address(address)})
