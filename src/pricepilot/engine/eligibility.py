"""
PricePilot Eligibility Evaluator

Runs an oracle eligibility check for a stored policy and records the
result: status becomes eligible or ineligible and the snapshot replaces
any earlier one. Re-running with unchanged oracle data yields the same
status and amounts.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from ..exceptions import InvalidInvoiceError, PolicyNotFoundError, PolicyStateError
from ..formatting import normalize_product_id
from ..models.enums import PolicyStatus
from ..models.policy import EligibilitySnapshot, PolicyRecord
from ..store.policy_store import PolicyStore
from .oracle_client import OracleClient

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EligibilityEvaluator:
    def __init__(
        self,
        oracle: OracleClient,
        store: PolicyStore,
        drop_threshold_percent: Optional[Decimal] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.oracle = oracle
        self.store = store
        self.drop_threshold_percent = drop_threshold_percent
        self.clock = clock

    async def evaluate(self, address: str, policy: PolicyRecord) -> PolicyRecord:
        """
        Check the policy against the oracle and persist the snapshot.

        Raises:
            PolicyStateError: If the policy is already claimed
            InvalidInvoiceError: If the recorded purchase price is not positive
            ProductNotFoundError: If the oracle does not list the product
        """
        if policy.is_claimed:
            raise PolicyStateError(
                message="Policy already claimed; eligibility is final",
                policy_id=policy.policy_id,
            )

        original_price = policy.purchase_details.invoice_price
        if original_price <= 0:
            raise InvalidInvoiceError(
                message="Invalid purchase price recorded for policy.",
                policy_id=policy.policy_id,
            )

        recorded_id = policy.product_id
        product_id = normalize_product_id(recorded_id) or recorded_id

        result = await self.oracle.check_eligibility(
            product_id, original_price, self.drop_threshold_percent
        )

        checked_at = int(self.clock().timestamp() * 1000)
        snapshot = EligibilitySnapshot.from_result(result, checked_at=checked_at)
        status = PolicyStatus.ELIGIBLE if result.eligible else PolicyStatus.INELIGIBLE

        partial: dict = {"status": status.value, "eligibility": snapshot.to_dict()}
        if product_id != recorded_id:
            partial["purchaseDetails"] = policy.purchase_details.with_product_id(product_id).to_dict()

        updated = self.store.merge(address, policy.policy_id, partial)
        if updated is None:
            raise PolicyNotFoundError(
                message="Policy disappeared during eligibility check",
                policy_id=policy.policy_id,
            )

        logger.info(
            "Eligibility checked: %s (drop %s%%)",
            status.value, snapshot.drop_percentage,
            extra={"policy_id": policy.policy_id, "product_id": product_id, "status": status.value},
        )
        return updated
