"""
PricePilot Oracle Client

Reads the price oracle over HTTP:

    GET /api/prices                    -> catalog + published Merkle root
    GET /api/merkle-proof/{productId}  -> inclusion proof for one product

and decides whether an insured price has dropped far enough to pay out.
No retries or timeouts are applied here; callers own that policy.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from ..config import OracleConfig
from ..crypto.merkle import verify_proof_async
from ..crypto.poseidon import PoseidonHasher
from ..exceptions import (
    OracleRequestError,
    OracleResponseError,
    ProductNotFoundError,
)
from ..formatting import normalize_product_id
from ..models.oracle import (
    EligibilityResult,
    OracleMerkleProof,
    OraclePrice,
    OraclePriceCatalog,
)
from .oracle_schemas import OracleMerkleProofSchema, OraclePricesSchema

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_CENT = Decimal("0.01")


def drop_percentage(original_price: int, current_price: int) -> tuple[int, Decimal]:
    """Return (dropAmount, unrounded dropPercentage)."""
    drop_amount = max(0, original_price - current_price)
    if original_price <= 0:
        return drop_amount, Decimal(0)
    return drop_amount, Decimal(drop_amount) * _HUNDRED / Decimal(original_price)


def is_eligible(drop_amount: int, percentage: Decimal, threshold: Decimal) -> bool:
    return drop_amount > 0 and percentage >= threshold


def round_percentage(percentage: Decimal) -> Decimal:
    return percentage.quantize(_CENT, rounding=ROUND_HALF_UP)


def match_product(prices: tuple[OraclePrice, ...], product_id: str) -> Optional[OraclePrice]:
    """
    Find the catalog entry for ``product_id``.

    Normalized comparison (uppercase, alphanumerics only) takes precedence;
    only when the input normalizes to nothing does a trimmed,
    case-insensitive comparison of the raw ids apply.
    """
    normalized = normalize_product_id(product_id)
    if normalized:
        for price in prices:
            if normalize_product_id(price.id) == normalized:
                return price
        return None
    trimmed = product_id.strip().lower()
    for price in prices:
        if price.id.strip().lower() == trimmed:
            return price
    return None


class OracleClient:
    """
    Async client for the price oracle.

    When a hasher is supplied, every fetched Merkle proof is re-verified
    locally before it is used.

    Usage:
        async with OracleClient(config, hasher=hasher) as oracle:
            result = await oracle.check_eligibility("MACBOOK", 2_499_000_000)
    """

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        hasher: Optional[PoseidonHasher] = None,
    ):
        self.config = config or OracleConfig()
        self.client = client or httpx.AsyncClient()
        self.hasher = hasher

    async def __aenter__(self) -> OracleClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _fetch(self, path: str, schema: type[BaseModel]) -> Any:
        url = self.config.endpoint(path)
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise OracleRequestError(
                message=f"Oracle request failed: {e}",
                details={"url": url, "upstream": str(e)},
            ) from e

        if response.is_error:
            body = response.text
            raise OracleRequestError(
                message=body or f"Request failed: {response.status_code}",
                details={"url": url, "status": response.status_code, "upstream": body},
            )

        try:
            return schema.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise OracleResponseError(
                message=f"Malformed oracle response from {path}",
                details={"url": url, "upstream": str(e)},
            ) from e

    async def get_prices(self) -> OraclePriceCatalog:
        payload = await self._fetch("/api/prices", OraclePricesSchema)
        return payload.to_domain()

    async def get_merkle_proof(self, product_id: str) -> OracleMerkleProof:
        payload = await self._fetch(
            f"/api/merkle-proof/{quote(product_id, safe='')}", OracleMerkleProofSchema
        )
        proof = payload.to_domain()
        if self.hasher is not None:
            await verify_proof_async(self.hasher, proof)
        return proof

    async def check_eligibility(
        self,
        product_id: str,
        original_price: int,
        drop_threshold_percent: Optional[Union[Decimal, int, str]] = None,
    ) -> EligibilityResult:
        """
        Compare an insured price with the oracle's current price.

        Raises:
            ProductNotFoundError: If no catalog entry matches
            InvalidMerkleProofError: If proof verification is on and fails
            OracleRequestError / OracleResponseError: On transport or payload failure
        """
        threshold = Decimal(str(
            self.config.drop_threshold_percent
            if drop_threshold_percent is None else drop_threshold_percent
        ))

        catalog = await self.get_prices()
        matched = match_product(catalog.prices, product_id)
        if matched is None:
            raise ProductNotFoundError(
                message=f"Product {product_id} not found in oracle catalog.",
                details={"product_id": product_id},
            )

        proof = await self.get_merkle_proof(matched.id)

        warnings: list[str] = []
        if proof.root != catalog.merkle_root:
            logger.warning(
                "Oracle proof root does not match reported merkle root",
                extra={"product_id": matched.id, "merkle_root": catalog.merkle_root},
            )
            warnings.append("proof_root_mismatch")

        current_price = matched.current_price
        drop_amount, percentage = drop_percentage(original_price, current_price)

        return EligibilityResult(
            eligible=is_eligible(drop_amount, percentage, threshold),
            drop_percentage=round_percentage(percentage),
            drop_amount=drop_amount,
            current_price=current_price,
            merkle_root=catalog.merkle_root,
            proof=proof,
            payout_amount=drop_amount,
            matched_product_id=matched.id,
            warnings=tuple(warnings),
        )
