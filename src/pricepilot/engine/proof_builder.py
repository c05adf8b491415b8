"""
PricePilot Claim Proof Builder

Turns a stored policy plus an oracle Merkle proof into a Groth16 claim
proof for the vault's verifier:

1. build_inputs: every circuit input through FieldEncoder
2. generate_proof: snarkjs groth16 fullprove with the cached artifacts
3. local verification against the verification key (warning only)
4. pi_b pairs swapped into verifier order

The on-chain verifier has the final word, so a proof that fails local
verification is still returned.
"""
from __future__ import annotations

import asyncio
import json
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from ..config import ProverConfig
from ..crypto.field import FieldEncoder
from ..exceptions import ArtifactError, PricePilotError, ProofGenerationError
from ..models.oracle import OracleMerkleProof
from ..models.policy import PolicyRecord
from ..models.proof import CircuitInputs, ClaimProof, Groth16Proof
from ..toolchain import node_env, run_command

logger = logging.getLogger(__name__)


# =============================================================================
# Artifacts
# =============================================================================

@dataclass(frozen=True)
class CircuitArtifacts:
    wasm_path: Path
    zkey_path: Path
    verification_key_path: Optional[Path]


class ArtifactCache:
    """
    Circuit artifacts resolved once per cache instance.

    Concurrent first callers wait on one lock; exactly one of them loads.
    A failed load is not cached, so the next caller retries.
    """

    def __init__(self, config: ProverConfig):
        self.config = config
        self._lock = asyncio.Lock()
        self._artifacts: Optional[CircuitArtifacts] = None

    @property
    def loaded(self) -> bool:
        return self._artifacts is not None

    async def get(self) -> CircuitArtifacts:
        if self._artifacts is None:
            async with self._lock:
                if self._artifacts is None:
                    self._artifacts = await asyncio.to_thread(self._load)
        return self._artifacts

    def _load(self) -> CircuitArtifacts:
        missing = [str(p) for p in (self.config.wasm_path, self.config.zkey_path) if not p.is_file()]
        if missing:
            raise ArtifactError(
                message="Circuit artifacts not found",
                details={"missing": missing, "base": str(self.config.assets_base)},
            )

        vkey_path: Optional[Path] = self.config.verification_key_path
        if not vkey_path.is_file():
            logger.warning("Verification key not found; local proof verification disabled")
            vkey_path = None

        logger.info("Circuit artifacts loaded from %s", self.config.assets_base)
        return CircuitArtifacts(
            wasm_path=self.config.wasm_path.resolve(),
            zkey_path=self.config.zkey_path.resolve(),
            verification_key_path=vkey_path.resolve() if vkey_path else None,
        )


# =============================================================================
# Prover
# =============================================================================

class Prover(Protocol):
    async def full_prove(self, inputs: dict[str, Any], artifacts: CircuitArtifacts) -> tuple[dict[str, Any], list[str]]:
        """Return (raw snarkjs proof, public signals)."""
        ...

    async def verify(self, verification_key_path: Path, public_signals: list[str], proof: dict[str, Any]) -> bool:
        ...


class SnarkjsProver:
    """Groth16 through the snarkjs CLI, one temporary work directory per call."""

    def __init__(self, config: ProverConfig):
        self.config = config

    async def _run(self, args: list[str], cwd: Path):
        try:
            return await run_command(
                [self.config.snarkjs_bin, *args],
                cwd=cwd,
                env=node_env(self.config.node_modules),
            )
        except OSError as e:
            raise ProofGenerationError(
                message="Cannot start snarkjs",
                details={"upstream": str(e), "snarkjs_bin": self.config.snarkjs_bin},
            ) from e

    async def full_prove(self, inputs: dict[str, Any], artifacts: CircuitArtifacts) -> tuple[dict[str, Any], list[str]]:
        with tempfile.TemporaryDirectory(prefix="pricepilot-prove-") as tmp:
            work = Path(tmp)
            (work / "input.json").write_text(json.dumps(inputs), encoding="utf-8")
            result = await self._run(
                ["groth16", "fullprove", "input.json",
                 str(artifacts.wasm_path), str(artifacts.zkey_path),
                 "proof.json", "public.json"],
                cwd=work,
            )
            if not result.ok:
                raise ProofGenerationError(
                    message="snarkjs fullprove failed",
                    details={"upstream": result.message},
                )
            try:
                proof = json.loads((work / "proof.json").read_text(encoding="utf-8"))
                public = json.loads((work / "public.json").read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise ProofGenerationError(
                    message="snarkjs produced no readable proof",
                    details={"upstream": str(e)},
                ) from e
        return proof, [str(s) for s in public]

    async def verify(self, verification_key_path: Path, public_signals: list[str], proof: dict[str, Any]) -> bool:
        with tempfile.TemporaryDirectory(prefix="pricepilot-verify-") as tmp:
            work = Path(tmp)
            (work / "public.json").write_text(json.dumps(public_signals), encoding="utf-8")
            (work / "proof.json").write_text(json.dumps(proof), encoding="utf-8")
            result = await self._run(
                ["groth16", "verify", str(verification_key_path), "public.json", "proof.json"],
                cwd=work,
            )
        return result.ok and "OK" in result.stdout


# =============================================================================
# Claim Proof Builder
# =============================================================================

class ClaimProofBuilder:
    """
    Usage:
        builder = ClaimProofBuilder.from_config(cfg)
        claim_proof = await builder.build(policy, snapshot.proof, snapshot.merkle_root)
    """

    def __init__(
        self,
        prover: Prover,
        artifacts: ArtifactCache,
        encoder: Optional[FieldEncoder] = None,
    ):
        self.prover = prover
        self.artifacts = artifacts
        self.encoder = encoder or FieldEncoder()

    @classmethod
    def from_config(cls, config: ProverConfig, prover: Optional[Prover] = None) -> "ClaimProofBuilder":
        """snarkjs prover, artifact cache and encoder strictness from one ProverConfig."""
        return cls(
            prover or SnarkjsProver(config),
            ArtifactCache(config),
            encoder=FieldEncoder(strict=config.strict_encoding),
        )

    def build_inputs(self, policy: PolicyRecord, oracle_proof: OracleMerkleProof, merkle_root: str) -> CircuitInputs:
        enc = self.encoder
        details = policy.purchase_details
        return CircuitInputs(
            order_hash=enc.encode(details.order_hash, "orderHash"),
            invoice_price=enc.encode(details.invoice_price, "invoicePrice"),
            invoice_date=enc.encode(details.invoice_date, "invoiceDate"),
            product_hash=enc.encode(details.product_hash, "productHash"),
            salt=enc.encode(details.salt, "salt"),
            selected_tier=enc.encode(details.selected_tier, "selectedTier"),
            current_price=enc.encode(oracle_proof.current_price, "currentPrice"),
            leaf_hash=enc.encode(oracle_proof.leaf_value, "leafHash"),
            merkle_proof=tuple(enc.encode_many(oracle_proof.siblings, "merkleProof")),
            leaf_index=tuple(enc.encode_many(oracle_proof.path_indices, "leafIndex")),
            commitment=enc.encode(policy.secret_commitment, "commitment"),
            merkle_root=enc.encode(merkle_root, "merkleRoot"),
            policy_start_date=enc.encode(policy.policy_purchase_date, "policyStartDate"),
            paid_premium=enc.encode(policy.premium, "paidPremium"),
        )

    async def generate_proof(self, inputs: CircuitInputs) -> ClaimProof:
        artifacts = await self.artifacts.get()
        try:
            raw_proof, public_signals = await self.prover.full_prove(inputs.to_dict(), artifacts)
            proof = Groth16Proof.from_snarkjs(raw_proof)
        except PricePilotError:
            raise
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProofGenerationError(
                message="Prover returned a malformed proof",
                details={"upstream": str(e)},
            ) from e

        verified = await self._verify_locally(artifacts, public_signals, raw_proof)
        return ClaimProof(
            proof=proof,
            public_signals=tuple(public_signals),
            locally_verified=verified,
        )

    async def _verify_locally(
        self,
        artifacts: CircuitArtifacts,
        public_signals: list[str],
        raw_proof: dict[str, Any],
    ) -> Optional[bool]:
        if artifacts.verification_key_path is None:
            return None
        try:
            valid = await self.prover.verify(artifacts.verification_key_path, public_signals, raw_proof)
        except (PricePilotError, OSError) as e:
            logger.warning("Unable to verify proof locally: %s", e)
            return None
        if not valid:
            logger.warning("Proof verification failed locally; contract verification will run on-chain")
        return valid

    async def build(self, policy: PolicyRecord, oracle_proof: OracleMerkleProof, merkle_root: str) -> ClaimProof:
        inputs = self.build_inputs(policy, oracle_proof, merkle_root)
        return await self.generate_proof(inputs)
