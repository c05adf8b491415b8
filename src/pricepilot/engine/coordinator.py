"""
PricePilot Coordinators

PolicyPurchaseCoordinator: commitment -> allowance/approve -> buyPolicy ->
persist. ClaimSubmissionCoordinator: eligibility check, then claim:
preconditions -> ledger consistency -> proof -> claimPayout -> claimed.

Per policy, operations are serialized on an asyncio.Lock. Nothing is
persisted until the ledger has confirmed the transaction, so cancelling
a call midway leaves the store untouched.
"""
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from ..exceptions import (
    AlreadyClaimedError,
    InvalidPolicyIdError,
    LedgerError,
    MissingEligibilityError,
    NotEligibleError,
    OwnershipError,
    PolicyNotFoundError,
    PricePilotError,
    StaleRootError,
)
from ..formatting import normalize_address, normalize_root, public_signals_to_ints
from ..models.commitment import CommitmentRecord, InvoiceData
from ..models.enums import ClaimPhase, PolicyStatus
from ..models.policy import ContractAddresses, PolicyRecord
from ..store.policy_store import PolicyStore
from .commitment_builder import CommitmentBuilder
from .eligibility import EligibilityEvaluator, utc_now
from .ledger import Ledger
from .proof_builder import ClaimProofBuilder

logger = logging.getLogger(__name__)

POLICY_ID_RE = re.compile(r"^[0-9]+$")

T = TypeVar("T")


async def ledger_call(what: str, call: Awaitable[T], policy_id: Optional[str] = None) -> T:
    """Await a ledger call, wrapping collaborator failures in LedgerError."""
    try:
        return await call
    except PricePilotError:
        raise
    except Exception as e:
        raise LedgerError(
            message=f"Ledger call {what} failed",
            policy_id=policy_id,
            details={"upstream": str(e)},
        ) from e


# =============================================================================
# Purchase
# =============================================================================

class PolicyPurchaseCoordinator:
    """
    Usage:
        buyer = PolicyPurchaseCoordinator(builder, ledger, store, contracts, network)
        record = await buyer.insure(wallet, invoice)
    """

    def __init__(
        self,
        builder: CommitmentBuilder,
        ledger: Ledger,
        store: PolicyStore,
        contracts: ContractAddresses,
        network: str = "unknown",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.builder = builder
        self.ledger = ledger
        self.store = store
        self.contracts = contracts
        self.network = network
        self.clock = clock

    async def insure(self, address: str, invoice: InvoiceData) -> PolicyRecord:
        result = await self.builder.build_async(invoice)

        allowance = await ledger_call(
            "allowance", self.ledger.allowance(address, self.contracts.vault)
        )
        if allowance < result.premium:
            logger.info("Approving premium %d for vault", result.premium)
            await ledger_call("approve", self.ledger.approve(self.contracts.vault, result.premium))

        receipt = await ledger_call(
            "buyPolicy", self.ledger.buy_policy(result.commitment, result.premium)
        )
        if receipt.policy_id is None:
            raise LedgerError(
                message="buyPolicy receipt carried no policy id",
                details={"transaction_hash": receipt.transaction_hash},
            )

        record = PolicyRecord.from_purchase(
            policy_id=str(receipt.policy_id),
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            commitment=result,
            contracts=self.contracts,
            network=self.network,
            now=self.clock(),
        )
        self.store.save(address, record)
        self.store.save_commitment(address, CommitmentRecord.from_result(result))
        logger.info(
            "Policy purchased",
            extra={"policy_id": record.policy_id, "commitment_short": result.short},
        )
        return record


# =============================================================================
# Claims
# =============================================================================

@dataclass
class ClaimProgress:
    """In-memory view of where a policy's check or claim stands."""
    phase: ClaimPhase
    previous: Optional[ClaimPhase] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"phase": self.phase.value}
        if self.previous is not None:
            result["previous"] = self.previous.value
        if self.error:
            result["error"] = self.error
            result["errorCode"] = self.error_code
        if self.tx_hash:
            result["txHash"] = self.tx_hash
        return result


class ClaimSubmissionCoordinator:
    """
    Drives one policy through active -> checking -> eligible/ineligible ->
    claiming -> claimed. A failure during checking or claiming records an
    error and hands control back to the phase held before the attempt.
    """

    def __init__(
        self,
        store: PolicyStore,
        evaluator: EligibilityEvaluator,
        proof_builder: ClaimProofBuilder,
        ledger: Ledger,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.evaluator = evaluator
        self.proof_builder = proof_builder
        self.ledger = ledger
        self.clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._progress: dict[str, ClaimProgress] = {}

    # -------------------------------------------------------------------------
    # Progress tracking
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def serialized(self, policy_id: str) -> AsyncIterator[None]:
        """Hold the policy's lock; the lock is dropped once no caller holds or awaits it."""
        lock = self._locks.get(policy_id)
        if lock is None:
            lock = self._locks[policy_id] = asyncio.Lock()
        self._lock_users[policy_id] = self._lock_users.get(policy_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[policy_id] -= 1
            if not self._lock_users[policy_id]:
                del self._lock_users[policy_id]
                del self._locks[policy_id]

    def progress(self, policy_id: str) -> Optional[ClaimProgress]:
        return self._progress.get(policy_id)

    def _resting_phase(self, policy: PolicyRecord) -> ClaimPhase:
        current = self._progress.get(policy.policy_id)
        if current is not None and current.phase is ClaimPhase.ERROR and current.previous:
            return current.previous
        return ClaimPhase.from_status(policy.status)

    def _enter(self, policy_id: str, phase: ClaimPhase, resting: ClaimPhase) -> None:
        self._progress[policy_id] = ClaimProgress(phase=phase, previous=resting)

    def _fail(self, policy_id: str, resting: ClaimPhase, error: PricePilotError) -> None:
        self._progress[policy_id] = ClaimProgress(
            phase=ClaimPhase.ERROR,
            previous=resting,
            error=error.upstream_message or error.message,
            error_code=error.code,
        )

    def _settle(self, policy_id: str, phase: ClaimPhase, tx_hash: Optional[str] = None) -> None:
        self._progress[policy_id] = ClaimProgress(phase=phase, tx_hash=tx_hash)

    # -------------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------------

    async def check_eligibility(self, address: str, policy_id: str) -> PolicyRecord:
        async with self.serialized(policy_id):
            policy = self.store.require(address, policy_id)
            resting = self._resting_phase(policy)
            self._enter(policy_id, ClaimPhase.CHECKING, resting)
            try:
                updated = await self.evaluator.evaluate(address, policy)
            except PricePilotError as e:
                self._fail(policy_id, resting, e)
                logger.warning("Eligibility check failed: %s", e, extra={"policy_id": policy_id})
                raise
            except asyncio.CancelledError:
                self._settle(policy_id, resting)
                raise
            self._settle(policy_id, ClaimPhase.from_status(updated.status))
            return updated

    # -------------------------------------------------------------------------
    # Claim submission
    # -------------------------------------------------------------------------

    async def submit_claim(self, address: str, policy_id: str) -> PolicyRecord:
        """
        Submit a payout claim for a checked policy.

        Preconditions, all checked before any transaction is sent:
        an eligibility snapshot with a proof exists; the latest check
        found the policy eligible; the policy id is a non-negative
        integer; the ledger root equals the snapshot root; the ledger
        buyer is this wallet; the policy is not yet claimed.

        Raises:
            MissingEligibilityError, NotEligibleError, InvalidPolicyIdError,
            StaleRootError, OwnershipError, AlreadyClaimedError,
            ProofGenerationError, LedgerError
        """
        async with self.serialized(policy_id):
            policy = self.store.require(address, policy_id)
            resting = self._resting_phase(policy)
            self._enter(policy_id, ClaimPhase.CLAIMING, resting)
            try:
                updated = await self._submit(address, policy)
            except PricePilotError as e:
                self._fail(policy_id, resting, e)
                logger.warning("Claim submission failed: %s", e, extra={"policy_id": policy_id})
                raise
            except asyncio.CancelledError:
                self._settle(policy_id, resting)
                raise
            self._settle(policy_id, ClaimPhase.CLAIMED, tx_hash=updated.claim_tx_hash)
            return updated

    async def _submit(self, address: str, policy: PolicyRecord) -> PolicyRecord:
        policy_id = policy.policy_id

        if policy.is_claimed:
            raise AlreadyClaimedError(message="Policy is already claimed.", policy_id=policy_id)

        snapshot = policy.eligibility
        if snapshot is None or not snapshot.has_proof:
            raise MissingEligibilityError(
                message="Please check claim eligibility before submitting.",
                policy_id=policy_id,
            )

        if policy.status is not PolicyStatus.ELIGIBLE:
            raise NotEligibleError(
                message="Latest eligibility check found no qualifying price drop.",
                policy_id=policy_id,
                details={"status": policy.status.value},
            )

        if not POLICY_ID_RE.match(policy_id):
            raise InvalidPolicyIdError(message="Policy ID is invalid.", policy_id=policy_id)
        numeric_id = int(policy_id)

        on_chain_root, on_chain_policy = await asyncio.gather(
            ledger_call("priceMerkleRoot", self.ledger.price_merkle_root(), policy_id),
            ledger_call("policies", self.ledger.policies(numeric_id), policy_id),
        )

        formatted_root = normalize_root(snapshot.merkle_root)
        if normalize_root(on_chain_root) != formatted_root:
            raise StaleRootError(
                message="Latest on-chain Merkle root does not match oracle root.",
                policy_id=policy_id,
                details={"ledger_root": on_chain_root, "snapshot_root": snapshot.merkle_root},
            )

        if normalize_address(on_chain_policy.buyer) != normalize_address(address):
            raise OwnershipError(
                message="This policy belongs to another wallet.",
                policy_id=policy_id,
            )

        if on_chain_policy.already_claimed:
            raise AlreadyClaimedError(
                message="Policy is already claimed on-chain.",
                policy_id=policy_id,
            )

        claim_proof = await self.proof_builder.build(policy, snapshot.proof, snapshot.merkle_root)
        groth16 = claim_proof.proof

        receipt = await ledger_call(
            "claimPayout",
            self.ledger.claim_payout(
                numeric_id,
                normalize_root(policy.secret_commitment),
                formatted_root,
                policy.policy_purchase_date,
                policy.premium,
                groth16.a,
                groth16.b,
                groth16.c,
                public_signals_to_ints(claim_proof.public_signals),
            ),
            policy_id,
        )

        now = self.clock()
        refreshed = snapshot.to_dict()
        refreshed["checkedAt"] = int(now.timestamp() * 1000)
        try:
            updated = self.store.merge(address, policy_id, {
                "status": PolicyStatus.CLAIMED.value,
                "claimTxHash": receipt.transaction_hash,
                "claimedAt": int(now.timestamp()),
                "eligibility": refreshed,
            })
            if updated is None:
                raise PolicyNotFoundError(
                    message="Policy disappeared before the claim could be recorded",
                    policy_id=policy_id,
                    details={"claim_tx_hash": receipt.transaction_hash},
                )
        except PricePilotError:
            logger.error(
                "Claim paid on-chain but not recorded locally; reconcile with claim tx %s",
                receipt.transaction_hash,
                extra={"policy_id": policy_id, "claim_tx_hash": receipt.transaction_hash},
            )
            raise
        logger.info("Claim paid", extra={"policy_id": policy_id, "status": "claimed"})
        return updated
