"""
PricePilot Proof Models

CircuitInputs carries every named input of the priceProtection circuit in
field-canonical decimal-string form. Groth16Proof is the tuple shape the
vault's verifier expects (b coordinates already swapped).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class CircuitInputs:
    # private
    order_hash: str
    invoice_price: str
    invoice_date: str
    product_hash: str
    salt: str
    selected_tier: str
    current_price: str
    leaf_hash: str
    merkle_proof: tuple[str, ...]
    leaf_index: tuple[str, ...]
    # public
    commitment: str
    merkle_root: str
    policy_start_date: str
    paid_premium: str

    def to_dict(self) -> dict[str, Any]:
        """Named-input mapping as written to snarkjs' input.json."""
        return {
            "orderHash": self.order_hash,
            "invoicePrice": self.invoice_price,
            "invoiceDate": self.invoice_date,
            "productHash": self.product_hash,
            "salt": self.salt,
            "selectedTier": self.selected_tier,
            "currentPrice": self.current_price,
            "leafHash": self.leaf_hash,
            "merkleProof": list(self.merkle_proof),
            "leafIndex": list(self.leaf_index),
            "commitment": self.commitment,
            "merkleRoot": self.merkle_root,
            "policyStartDate": self.policy_start_date,
            "paidPremium": self.paid_premium,
        }


@dataclass(frozen=True)
class Groth16Proof:
    a: tuple[str, str]
    b: tuple[tuple[str, str], tuple[str, str]]
    c: tuple[str, str]

    @classmethod
    def from_snarkjs(cls, proof: dict[str, Any]) -> Groth16Proof:
        """
        Convert snarkjs' pi_a/pi_b/pi_c to verifier calldata order.

        Each pi_b pair is swapped; the verifier contract reads G2 points in
        (imaginary, real) order.
        """
        pi_a, pi_b, pi_c = proof["pi_a"], proof["pi_b"], proof["pi_c"]
        return cls(
            a=(str(pi_a[0]), str(pi_a[1])),
            b=(
                (str(pi_b[0][1]), str(pi_b[0][0])),
                (str(pi_b[1][1]), str(pi_b[1][0])),
            ),
            c=(str(pi_c[0]), str(pi_c[1])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "a": list(self.a),
            "b": [list(self.b[0]), list(self.b[1])],
            "c": list(self.c),
        }


@dataclass(frozen=True)
class ClaimProof:
    proof: Groth16Proof
    public_signals: tuple[str, ...]
    locally_verified: Optional[bool] = None   # None when verification could not run

    def public_signal_ints(self) -> list[int]:
        return [int(s) for s in self.public_signals]

    def to_dict(self) -> dict[str, Any]:
        return {
            "proof": self.proof.to_dict(),
            "publicSignals": list(self.public_signals),
        }
