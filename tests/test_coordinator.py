"""
Tests for the purchase and claim coordinators.
"""
import asyncio
import logging

import pytest

from pricepilot.config import ProverConfig
from pricepilot.crypto.field import to_hex32
from pricepilot.engine import (
    ArtifactCache,
    ClaimProofBuilder,
    ClaimSubmissionCoordinator,
    CommitmentBuilder,
    EligibilityEvaluator,
    PolicyPurchaseCoordinator,
)
from pricepilot.exceptions import (
    AlreadyClaimedError,
    InvalidPolicyIdError,
    LedgerError,
    MissingEligibilityError,
    NotEligibleError,
    OutOfRangeError,
    OwnershipError,
    ProductNotFoundError,
    StaleRootError,
    StoreError,
)
from pricepilot.models import ClaimPhase, ContractAddresses, PolicyStatus
from tests.conftest import (
    FIXED_NOW,
    OTHER_WALLET,
    WALLET,
    FakeLedger,
    FakeProver,
    make_hasher,
    make_invoice,
    make_merkle_proof,
    make_oracle,
    make_policy_record,
    make_snapshot,
    oracle_transport,
    prices_payload,
)


def _claim_setup(tmp_path, store, ledger, prover=None, oracle_prices=None):
    hasher = make_hasher()
    proof = make_merkle_proof(hasher)
    prices = oracle_prices if oracle_prices is not None else [("MACBOOK", 99_990_000, 199_990_000)]
    transport = oracle_transport(prices_payload(proof.root, prices), {"MACBOOK": proof})
    evaluator = EligibilityEvaluator(make_oracle(transport), store, clock=lambda: FIXED_NOW)

    config = ProverConfig(assets_base=tmp_path)
    config.wasm_path.write_bytes(b"\0asm")
    config.zkey_path.write_bytes(b"zkey")
    proof_builder = ClaimProofBuilder(prover or FakeProver(), ArtifactCache(config))

    coordinator = ClaimSubmissionCoordinator(
        store, evaluator, proof_builder, ledger, clock=lambda: FIXED_NOW
    )
    return coordinator, proof


def _checked_policy(proof, policy_id="7", status=PolicyStatus.ELIGIBLE):
    return make_policy_record(
        policy_id=policy_id,
        transaction_hash=f"0xtx{policy_id}",
        status=status,
        eligibility=make_snapshot(proof=proof),
    )


class TestPolicyPurchase:
    """Tests for PolicyPurchaseCoordinator.insure."""

    def _coordinator(self, store, ledger):
        return PolicyPurchaseCoordinator(
            CommitmentBuilder(make_hasher()),
            ledger,
            store,
            ContractAddresses(vault="0xvault", token="0xtoken", verifier="0xverifier"),
            network="anvil-local",
            clock=lambda: FIXED_NOW,
        )

    @pytest.mark.anyio
    async def test_approves_then_buys(self, store):
        ledger = FakeLedger(allowance=0)
        record = await self._coordinator(store, ledger).insure(WALLET, make_invoice())
        names = [name for name, _ in ledger.calls]
        assert names == ["allowance", "approve", "buy_policy"]
        assert ledger.calls[1][1] == ("0xvault", 3_000_000)
        assert record.policy_id == "7"
        assert record.status is PolicyStatus.ACTIVE
        assert record.premium == 3_000_000
        assert record.policy_purchase_date == int(FIXED_NOW.timestamp())
        assert store.require(WALLET, "7").secret_commitment == record.secret_commitment
        assert len(store.list_commitments(WALLET)) == 1

    @pytest.mark.anyio
    async def test_sufficient_allowance_skips_approve(self, store):
        ledger = FakeLedger(allowance=10_000_000)
        await self._coordinator(store, ledger).insure(WALLET, make_invoice())
        assert not ledger.called("approve")

    @pytest.mark.anyio
    async def test_commitment_sent_on_chain(self, store):
        ledger = FakeLedger()
        record = await self._coordinator(store, ledger).insure(WALLET, make_invoice())
        buy = next(args for name, args in ledger.calls if name == "buy_policy")
        assert buy == (record.secret_commitment, 3_000_000)

    @pytest.mark.anyio
    async def test_out_of_range_sends_nothing(self, store):
        ledger = FakeLedger()
        with pytest.raises(OutOfRangeError):
            await self._coordinator(store, ledger).insure(WALLET, make_invoice(price="0.10"))
        assert ledger.calls == []
        assert store.list_policies(WALLET) == []

    @pytest.mark.anyio
    async def test_ledger_failure_persists_nothing(self, store):
        class FailingLedger(FakeLedger):
            async def buy_policy(self, commitment, premium):
                raise RuntimeError("execution reverted")

        with pytest.raises(LedgerError) as exc:
            await self._coordinator(store, FailingLedger()).insure(WALLET, make_invoice())
        assert exc.value.upstream_message == "execution reverted"
        assert store.list_policies(WALLET) == []


class TestCheckEligibility:
    @pytest.mark.anyio
    async def test_progress_follows_status(self, tmp_path, store):
        coordinator, _ = _claim_setup(tmp_path, store, FakeLedger())
        store.save(WALLET, make_policy_record())
        updated = await coordinator.check_eligibility(WALLET, "7")
        assert updated.status is PolicyStatus.ELIGIBLE
        assert coordinator.progress("7").phase is ClaimPhase.ELIGIBLE

    @pytest.mark.anyio
    async def test_failure_keeps_previous_phase(self, tmp_path, store):
        """A failed check records the error and remembers the phase before it."""
        coordinator, _ = _claim_setup(tmp_path, store, FakeLedger(), oracle_prices=[])
        store.save(WALLET, make_policy_record())
        with pytest.raises(ProductNotFoundError):
            await coordinator.check_eligibility(WALLET, "7")
        progress = coordinator.progress("7")
        assert progress.phase is ClaimPhase.ERROR
        assert progress.previous is ClaimPhase.ACTIVE
        assert progress.error_code == "PP_PRODUCT_NOT_FOUND"
        assert progress.to_dict()["previous"] == "active"
        assert store.require(WALLET, "7").status is PolicyStatus.ACTIVE


class TestSubmitClaim:
    """Tests for ClaimSubmissionCoordinator.submit_claim."""

    @pytest.mark.anyio
    async def test_successful_claim(self, tmp_path, store):
        hasher = make_hasher()
        proof = make_merkle_proof(hasher)
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))

        updated = await coordinator.submit_claim(WALLET, "7")

        assert updated.status is PolicyStatus.CLAIMED
        assert updated.claim_tx_hash == "0xclaimed"
        assert updated.claimed_at == int(FIXED_NOW.timestamp())
        assert updated.eligibility.checked_at == int(FIXED_NOW.timestamp() * 1000)
        assert updated.eligibility.proof == proof
        progress = coordinator.progress("7")
        assert progress.phase is ClaimPhase.CLAIMED
        assert progress.tx_hash == "0xclaimed"

        claim = next(args for name, args in ledger.calls if name == "claim_payout")
        policy_id, commitment, root, purchase_date, premium, a, b, c, signals = claim
        assert policy_id == 7
        assert commitment == "0x" + "ab" * 32
        assert root == proof.root
        assert purchase_date == 1_735_689_600
        assert premium == 3_000_000
        assert b == (("22", "21"), ("24", "23"))
        assert signals == [1, 4242, 1735689600, 3000000]

    @pytest.mark.anyio
    async def test_reads_ledger_before_proving(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        await coordinator.submit_claim(WALLET, "7")
        names = [name for name, _ in ledger.calls]
        assert set(names[:2]) == {"price_merkle_root", "policies"}
        assert names[-1] == "claim_payout"

    @pytest.mark.anyio
    async def test_root_compared_in_normal_form(self, tmp_path, store):
        """A ledger root in decimal form matches the same hex snapshot root."""
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=str(int(proof.root, 16)))
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        updated = await coordinator.submit_claim(WALLET, "7")
        assert updated.status is PolicyStatus.CLAIMED

    @pytest.mark.anyio
    async def test_stale_root(self, tmp_path, store):
        """A root changed on-chain since the check stops the claim before proving."""
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=to_hex32(999))
        prover = FakeProver()
        coordinator, _ = _claim_setup(tmp_path, store, ledger, prover=prover)
        store.save(WALLET, _checked_policy(proof))
        with pytest.raises(StaleRootError):
            await coordinator.submit_claim(WALLET, "7")
        assert not ledger.called("claim_payout")
        assert prover.prove_calls == []
        assert store.require(WALLET, "7").status is PolicyStatus.ELIGIBLE
        progress = coordinator.progress("7")
        assert progress.phase is ClaimPhase.ERROR
        assert progress.previous is ClaimPhase.ELIGIBLE

    @pytest.mark.anyio
    async def test_recheck_after_stale_root(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=to_hex32(999))
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        with pytest.raises(StaleRootError):
            await coordinator.submit_claim(WALLET, "7")
        await coordinator.check_eligibility(WALLET, "7")
        ledger.root = proof.root
        updated = await coordinator.submit_claim(WALLET, "7")
        assert updated.status is PolicyStatus.CLAIMED

    @pytest.mark.anyio
    async def test_already_claimed_on_chain(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root, already_claimed=True)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        with pytest.raises(AlreadyClaimedError):
            await coordinator.submit_claim(WALLET, "7")
        assert not ledger.called("claim_payout")

    @pytest.mark.anyio
    async def test_already_claimed_locally(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof, status=PolicyStatus.CLAIMED))
        with pytest.raises(AlreadyClaimedError):
            await coordinator.submit_claim(WALLET, "7")
        assert ledger.calls == []

    @pytest.mark.anyio
    async def test_other_wallet_policy(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root, buyer=OTHER_WALLET)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        with pytest.raises(OwnershipError):
            await coordinator.submit_claim(WALLET, "7")
        assert not ledger.called("claim_payout")

    @pytest.mark.anyio
    async def test_buyer_compared_case_insensitively(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root, buyer=WALLET.lower())
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        updated = await coordinator.submit_claim(WALLET, "7")
        assert updated.is_claimed

    @pytest.mark.anyio
    async def test_missing_eligibility(self, tmp_path, store):
        ledger = FakeLedger()
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, make_policy_record())
        with pytest.raises(MissingEligibilityError) as exc:
            await coordinator.submit_claim(WALLET, "7")
        assert exc.value.message == "Please check claim eligibility before submitting."
        assert ledger.calls == []

    @pytest.mark.anyio
    async def test_snapshot_without_proof(self, tmp_path, store):
        ledger = FakeLedger()
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, make_policy_record(
            status=PolicyStatus.ELIGIBLE, eligibility=make_snapshot(),
        ))
        with pytest.raises(MissingEligibilityError):
            await coordinator.submit_claim(WALLET, "7")

    @pytest.mark.anyio
    async def test_invalid_policy_id(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof, policy_id="0x7"))
        with pytest.raises(InvalidPolicyIdError):
            await coordinator.submit_claim(WALLET, "0x7")
        assert ledger.calls == []

    @pytest.mark.anyio
    async def test_ledger_failure_message_surfaces(self, tmp_path, store):
        class RevertingLedger(FakeLedger):
            async def claim_payout(self, *args):
                raise RuntimeError("Invalid proof")

        proof = make_merkle_proof(make_hasher())
        coordinator, _ = _claim_setup(tmp_path, store, RevertingLedger(root=proof.root))
        store.save(WALLET, _checked_policy(proof))
        with pytest.raises(LedgerError):
            await coordinator.submit_claim(WALLET, "7")
        assert coordinator.progress("7").error == "Invalid proof"
        assert store.require(WALLET, "7").status is PolicyStatus.ELIGIBLE

    @pytest.mark.anyio
    async def test_cancellation_restores_phase(self, tmp_path, store):
        started = asyncio.Event()

        class SlowLedger(FakeLedger):
            async def price_merkle_root(self):
                started.set()
                await asyncio.sleep(3600)

        proof = make_merkle_proof(make_hasher())
        coordinator, _ = _claim_setup(tmp_path, store, SlowLedger(root=proof.root))
        store.save(WALLET, _checked_policy(proof))
        task = asyncio.create_task(coordinator.submit_claim(WALLET, "7"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert coordinator.progress("7").phase is ClaimPhase.ELIGIBLE
        assert store.require(WALLET, "7").status is PolicyStatus.ELIGIBLE

    @pytest.mark.anyio
    async def test_claims_serialized_per_policy(self, tmp_path, store):
        """A second concurrent claim on one policy waits and then sees it claimed."""
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))
        results = await asyncio.gather(
            coordinator.submit_claim(WALLET, "7"),
            coordinator.submit_claim(WALLET, "7"),
            return_exceptions=True,
        )
        assert results[0].is_claimed
        assert isinstance(results[1], AlreadyClaimedError)
        assert sum(1 for name, _ in ledger.calls if name == "claim_payout") == 1

    @pytest.mark.anyio
    async def test_ineligible_policy_not_claimed(self, tmp_path, store):
        """A policy whose latest check found no drop is refused before any ledger call."""
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        prover = FakeProver()
        coordinator, _ = _claim_setup(tmp_path, store, ledger, prover=prover)
        store.save(WALLET, _checked_policy(proof, status=PolicyStatus.INELIGIBLE))
        with pytest.raises(NotEligibleError) as exc:
            await coordinator.submit_claim(WALLET, "7")
        assert exc.value.code == "PP_CLAIM_NOT_ELIGIBLE"
        assert ledger.calls == []
        assert prover.prove_calls == []
        assert store.require(WALLET, "7").status is PolicyStatus.INELIGIBLE
        assert coordinator.progress("7").previous is ClaimPhase.INELIGIBLE

    @pytest.mark.anyio
    async def test_unrecorded_claim_logs_tx_hash(self, tmp_path, store, monkeypatch, caplog):
        proof = make_merkle_proof(make_hasher())
        ledger = FakeLedger(root=proof.root)
        coordinator, _ = _claim_setup(tmp_path, store, ledger)
        store.save(WALLET, _checked_policy(proof))

        def failing_merge(*args, **kwargs):
            raise StoreError(message="Cannot write store key")

        monkeypatch.setattr(store, "merge", failing_merge)
        with caplog.at_level(logging.ERROR, logger="pricepilot.engine.coordinator"):
            with pytest.raises(StoreError):
                await coordinator.submit_claim(WALLET, "7")
        assert ledger.called("claim_payout")
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].claim_tx_hash == "0xclaimed"
        assert "0xclaimed" in errors[0].getMessage()

    @pytest.mark.anyio
    async def test_locks_released_after_use(self, tmp_path, store):
        proof = make_merkle_proof(make_hasher())
        coordinator, _ = _claim_setup(tmp_path, store, FakeLedger(root=proof.root))
        store.save(WALLET, _checked_policy(proof))
        await asyncio.gather(
            coordinator.check_eligibility(WALLET, "7"),
            coordinator.submit_claim(WALLET, "7"),
        )
        assert coordinator._locks == {}
        assert coordinator._lock_users == {}
