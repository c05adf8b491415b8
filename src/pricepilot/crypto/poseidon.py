"""
Poseidon hashing over the BN254 scalar field.

PoseidonHasher fixes the call contract (1 to 16 field inputs, one field
output) and delegates the permutation to a backend. The default backend
runs circomlibjs in Node so that digests match the compiled circuit bit
for bit; tests inject their own backend.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence

from ..exceptions import HasherError
from ..toolchain import run_node_script
from .field import FIELD_MODULUS, to_hex32

logger = logging.getLogger(__name__)

MAX_INPUTS = 16

_CIRCOMLIB_SCRIPT = """
const { buildPoseidon } = require('circomlibjs');
(async () => {
  const poseidon = await buildPoseidon();
  const batches = JSON.parse(process.argv[1]);
  const out = batches.map((b) => poseidon.F.toObject(poseidon(b.map(BigInt))).toString());
  process.stdout.write(JSON.stringify(out));
})().catch((e) => { console.error(e && e.message ? e.message : String(e)); process.exit(1); });
"""


class PoseidonBackend(Protocol):
    def hash_batch(self, batches: Sequence[Sequence[int]]) -> list[int]:
        """Hash each input vector; results are in the same order."""
        ...


class CircomlibPoseidonBackend:
    """Poseidon via circomlibjs' buildPoseidon, one Node process per batch."""

    def __init__(self, node_bin: str = "node", node_modules: Optional[Path] = None):
        self.node_bin = node_bin
        self.node_modules = node_modules

    def hash_batch(self, batches: Sequence[Sequence[int]]) -> list[int]:
        payload = json.dumps([[str(x) for x in batch] for batch in batches])
        try:
            result = run_node_script(
                _CIRCOMLIB_SCRIPT, [payload],
                node_bin=self.node_bin, node_modules=self.node_modules,
            )
        except OSError as e:
            raise HasherError(
                message="Cannot start Node for Poseidon",
                details={"upstream": str(e), "node_bin": self.node_bin},
            ) from e
        if not result.ok:
            raise HasherError(
                message="circomlibjs Poseidon failed",
                details={"upstream": result.message},
            )
        try:
            return [int(x) for x in json.loads(result.stdout)]
        except (ValueError, TypeError) as e:
            raise HasherError(
                message="Unexpected Poseidon output",
                details={"upstream": str(e)},
            ) from e


class PoseidonHasher:
    """Poseidon call contract shared by commitments, product hashes and Merkle paths."""

    def __init__(self, backend: Optional[PoseidonBackend] = None):
        self.backend = backend or CircomlibPoseidonBackend()

    def hash(self, inputs: Sequence[int]) -> int:
        return self.hash_many([inputs])[0]

    def hash_hex(self, inputs: Sequence[int]) -> str:
        return to_hex32(self.hash(inputs))

    def hash_many(self, batches: Sequence[Sequence[int]]) -> list[int]:
        prepared = []
        for batch in batches:
            if not 1 <= len(batch) <= MAX_INPUTS:
                raise HasherError(
                    message=f"Poseidon takes 1 to {MAX_INPUTS} inputs, got {len(batch)}"
                )
            prepared.append([int(x) % FIELD_MODULUS for x in batch])

        digests = self.backend.hash_batch(prepared)
        if len(digests) != len(prepared):
            raise HasherError(
                message="Poseidon backend returned the wrong number of digests",
                details={"expected": len(prepared), "got": len(digests)},
            )
        for digest in digests:
            if not 0 <= digest < FIELD_MODULUS:
                raise HasherError(message="Poseidon digest outside the field")
        return digests

    @classmethod
    def from_config(cls, node_bin: str = "node", node_modules: Optional[Path] = None) -> "PoseidonHasher":
        return cls(CircomlibPoseidonBackend(node_bin=node_bin, node_modules=node_modules))
