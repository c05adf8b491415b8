"""
Pytest configuration and fixtures for PricePilot tests.

Provides helper factories and in-process fakes for the external
collaborators: a deterministic Poseidon stand-in, a recording ledger,
a canned prover and an httpx MockTransport oracle.
"""
import hashlib
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import httpx
import pytest

from pricepilot.config import OracleConfig
from pricepilot.crypto.field import FIELD_MODULUS, to_hex32
from pricepilot.crypto.poseidon import PoseidonHasher
from pricepilot.engine.oracle_client import OracleClient
from pricepilot.models import (
    ContractAddresses,
    EligibilitySnapshot,
    InvoiceData,
    LedgerPolicy,
    OracleMerkleProof,
    PolicyRecord,
    PolicyStatus,
    PurchaseDetails,
    TransactionReceipt,
)
from pricepilot.store import MemoryBackend, PolicyStore


WALLET = "0xAbCdEf0000000000000000000000000000000001"
OTHER_WALLET = "0x9999999999999999999999999999999999999999"
FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================

class FakePoseidonBackend:
    """Deterministic field hash standing in for circomlibjs."""

    def __init__(self):
        self.calls = 0

    def hash_batch(self, batches):
        self.calls += len(batches)
        out = []
        for batch in batches:
            material = "poseidon:" + ",".join(str(x) for x in batch)
            digest = hashlib.sha256(material.encode()).digest()
            out.append(int.from_bytes(digest, "big") % FIELD_MODULUS)
        return out


def make_hasher() -> PoseidonHasher:
    return PoseidonHasher(FakePoseidonBackend())


SNARKJS_PROOF = {
    "pi_a": ["11", "12", "1"],
    "pi_b": [["21", "22"], ["23", "24"], ["1", "0"]],
    "pi_c": ["31", "32", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}
PUBLIC_SIGNALS = ["1", "4242", "1735689600", "3000000"]


class FakeProver:
    """Records inputs and returns a canned snarkjs proof."""

    def __init__(self, verify_result: Any = True, fail_with: Optional[Exception] = None):
        self.verify_result = verify_result
        self.fail_with = fail_with
        self.prove_calls: list[dict] = []
        self.verify_calls = 0

    async def full_prove(self, inputs, artifacts):
        self.prove_calls.append(inputs)
        if self.fail_with is not None:
            raise self.fail_with
        return json.loads(json.dumps(SNARKJS_PROOF)), list(PUBLIC_SIGNALS)

    async def verify(self, verification_key_path, public_signals, proof):
        self.verify_calls += 1
        if isinstance(self.verify_result, Exception):
            raise self.verify_result
        return self.verify_result


class FakeLedger:
    """In-memory vault/token recording every call by name."""

    def __init__(
        self,
        root: str = "",
        buyer: str = WALLET,
        already_claimed: bool = False,
        allowance: int = 0,
        next_policy_id: int = 7,
    ):
        self.root = root
        self.buyer = buyer
        self.already_claimed = already_claimed
        self._allowance = allowance
        self.next_policy_id = next_policy_id
        self.calls: list[tuple[str, tuple]] = []

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)

    async def allowance(self, owner, spender):
        self.calls.append(("allowance", (owner, spender)))
        return self._allowance

    async def approve(self, spender, amount):
        self.calls.append(("approve", (spender, amount)))
        self._allowance = amount
        return TransactionReceipt(transaction_hash="0xapprove", block_number=10)

    async def buy_policy(self, commitment, premium):
        self.calls.append(("buy_policy", (commitment, premium)))
        return TransactionReceipt(
            transaction_hash=f"0xbuy{self.next_policy_id}",
            block_number=11,
            policy_id=str(self.next_policy_id),
        )

    async def claim_payout(self, policy_id, commitment, merkle_root, purchase_date,
                           premium, proof_a, proof_b, proof_c, public_signals):
        self.calls.append(("claim_payout", (
            policy_id, commitment, merkle_root, purchase_date, premium,
            proof_a, proof_b, proof_c, public_signals,
        )))
        return TransactionReceipt(transaction_hash="0xclaimed", block_number=12)

    async def price_merkle_root(self):
        self.calls.append(("price_merkle_root", ()))
        return self.root

    async def policies(self, policy_id):
        self.calls.append(("policies", (policy_id,)))
        return LedgerPolicy(
            buyer=self.buyer,
            commitment="0x" + "ab" * 32,
            premium_paid=3_000_000,
            purchase_date=1_735_689_600,
            already_claimed=self.already_claimed,
        )


# =============================================================================
# Merkle helpers
# =============================================================================

def make_price_tree(hasher: PoseidonHasher, leaves: list[int]):
    """Four-leaf Poseidon tree; returns (root, level1)."""
    assert len(leaves) == 4
    level1 = [hasher.hash([leaves[0], leaves[1]]), hasher.hash([leaves[2], leaves[3]])]
    return hasher.hash(level1), level1


def make_merkle_proof(
    hasher: PoseidonHasher,
    product_id: str = "MACBOOK",
    current_price: int = 99_990_000,
    index: int = 1,
    leaves: Optional[list[int]] = None,
) -> OracleMerkleProof:
    """A Merkle proof that verifies under the fake hasher."""
    leaves = leaves or [101, 202, 303, 404]
    root, level1 = make_price_tree(hasher, leaves)
    return OracleMerkleProof(
        leaf=to_hex32(leaves[index]),
        siblings=(to_hex32(leaves[index ^ 1]), to_hex32(level1[(index >> 1) ^ 1])),
        path_indices=(index & 1, (index >> 1) & 1),
        root=to_hex32(root),
        current_price=current_price,
        product_hash="12345",
        product_id=product_id,
        leaf_big_int=str(leaves[index]),
    )


# =============================================================================
# Factory Helpers
# =============================================================================

def make_invoice(
    order_number: str = "A1",
    price: str = "199.99",
    purchase_date: date = date(2025, 1, 15),
    product_id: str = "X1",
) -> InvoiceData:
    return InvoiceData(
        order_number=order_number,
        purchase_price_usd=Decimal(price),
        purchase_date=purchase_date,
        product_id=product_id,
    )


def make_purchase_details(
    invoice_price: int = 199_990_000,
    product_id: str = "MACBOOK",
    selected_tier: int = 2,
) -> PurchaseDetails:
    return PurchaseDetails(
        order_hash=int("0x" + "11" * 32, 16),
        invoice_price=invoice_price,
        invoice_date=1_736_899_200,
        product_hash=987654321,
        salt=555_555_555,
        selected_tier=selected_tier,
        product_id=product_id,
    )


def make_snapshot(
    proof: Optional[OracleMerkleProof] = None,
    merkle_root: Optional[str] = None,
    checked_at: int = 1_740_830_400_000,
    drop_amount: int = 100_000_000,
    current_price: int = 99_990_000,
) -> EligibilitySnapshot:
    return EligibilitySnapshot(
        checked_at=checked_at,
        drop_percentage=Decimal("50.00"),
        drop_amount=drop_amount,
        current_price=current_price,
        merkle_root=merkle_root if merkle_root is not None else (proof.root if proof else None),
        proof=proof,
        payout_amount=drop_amount,
    )


def make_policy_record(
    policy_id: str = "7",
    transaction_hash: str = "0xtx7",
    status: PolicyStatus = PolicyStatus.ACTIVE,
    eligibility: Optional[EligibilitySnapshot] = None,
    details: Optional[PurchaseDetails] = None,
    premium: int = 3_000_000,
) -> PolicyRecord:
    return PolicyRecord(
        policy_id=policy_id,
        transaction_hash=transaction_hash,
        block_number=11,
        policy_purchase_date=1_735_689_600,
        purchase_details=details or make_purchase_details(),
        secret_commitment="0x" + "ab" * 32,
        premium=premium,
        tier=2,
        contracts=ContractAddresses(vault="0xvault", token="0xtoken", verifier="0xverifier"),
        created_at=FIXED_NOW.isoformat(),
        network="anvil-local",
        status=status,
        eligibility=eligibility,
    )


# =============================================================================
# Oracle helpers
# =============================================================================

def prices_payload(merkle_root: str, prices: list[tuple[str, int, int]]) -> dict:
    return {
        "prices": [
            {"id": pid, "name": pid.title(), "currentPrice": current, "basePrice": base, "change": 0}
            for pid, current, base in prices
        ],
        "merkleRoot": merkle_root,
        "timestamp": 1_740_830_400,
    }


def oracle_transport(
    prices: dict,
    proofs: dict[str, OracleMerkleProof],
    requests: Optional[list] = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request.url.raw_path.decode("ascii"))
        path = request.url.raw_path.decode("ascii").split("?")[0]
        if path == "/api/prices":
            return httpx.Response(200, json=prices)
        prefix = "/api/merkle-proof/"
        if path.startswith(prefix):
            proof = proofs.get(path[len(prefix):])
            if proof is None:
                return httpx.Response(404, text="Product not found")
            return httpx.Response(200, json=proof.to_dict())
        return httpx.Response(404, text="not found")
    return httpx.MockTransport(handler)


def make_oracle(
    transport: httpx.MockTransport,
    hasher: Optional[PoseidonHasher] = None,
    threshold: Decimal = Decimal("10"),
) -> OracleClient:
    config = OracleConfig(base_url="http://oracle.test", drop_threshold_percent=threshold)
    return OracleClient(config, client=httpx.AsyncClient(transport=transport), hasher=hasher)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def hasher() -> PoseidonHasher:
    return make_hasher()


@pytest.fixture
def store() -> PolicyStore:
    return PolicyStore(MemoryBackend())
