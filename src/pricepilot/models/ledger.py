"""Values returned by the ledger (vault contract) collaborator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LedgerPolicy:
    """On-chain view of ``policies(policyId)``."""
    buyer: str
    commitment: str
    premium_paid: int
    purchase_date: int
    already_claimed: bool


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_hash: str
    block_number: int
    policy_id: Optional[str] = None     # set for buyPolicy receipts
