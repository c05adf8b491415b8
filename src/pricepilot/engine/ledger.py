"""
Ledger collaborator interface.

The vault contract and the payment token live behind this protocol; a
wallet integration implements it. Every method is a network round-trip.
"""
from __future__ import annotations

from typing import Protocol, Sequence

from ..models.ledger import LedgerPolicy, TransactionReceipt

G1Point = Sequence[str]
G2Point = Sequence[Sequence[str]]


class Ledger(Protocol):
    async def allowance(self, owner: str, spender: str) -> int:
        """Payment-token allowance granted by owner to spender (micro-units)."""
        ...

    async def approve(self, spender: str, amount: int) -> TransactionReceipt:
        ...

    async def buy_policy(self, commitment: str, premium: int) -> TransactionReceipt:
        """``buyPolicy``; the receipt carries the ledger-assigned policy id."""
        ...

    async def claim_payout(
        self,
        policy_id: int,
        commitment: str,
        merkle_root: str,
        purchase_date: int,
        premium: int,
        proof_a: G1Point,
        proof_b: G2Point,
        proof_c: G1Point,
        public_signals: Sequence[int],
    ) -> TransactionReceipt:
        ...

    async def price_merkle_root(self) -> str:
        ...

    async def policies(self, policy_id: int) -> LedgerPolicy:
        ...
