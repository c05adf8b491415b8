"""
Merkle inclusion check for oracle price proofs.

The oracle tree hashes pairs with Poseidon(2). A path index of 0 means the
running node is the left child at that level.
"""
from __future__ import annotations

import asyncio

from ..exceptions import InvalidMerkleProofError
from ..models.oracle import OracleMerkleProof
from .field import parse_int
from .poseidon import PoseidonHasher


def compute_root(hasher: PoseidonHasher, leaf: int, siblings: list[int], path_indices: list[int]) -> int:
    if len(siblings) != len(path_indices):
        raise InvalidMerkleProofError(
            message="Merkle proof has mismatched siblings and path indices",
            details={"siblings": len(siblings), "path_indices": len(path_indices)},
        )
    node = leaf
    for sibling, index in zip(siblings, path_indices):
        if index == 0:
            node = hasher.hash([node, sibling])
        elif index == 1:
            node = hasher.hash([sibling, node])
        else:
            raise InvalidMerkleProofError(message=f"Path index must be 0 or 1, got {index}")
    return node


def verify_proof(hasher: PoseidonHasher, proof: OracleMerkleProof) -> None:
    """Raise InvalidMerkleProofError unless the path reproduces ``proof.root``."""
    leaf = parse_int(proof.leaf_value)
    siblings = [parse_int(s) for s in proof.siblings]
    computed = compute_root(hasher, leaf, siblings, list(proof.path_indices))
    if computed != parse_int(proof.root):
        raise InvalidMerkleProofError(
            message=f"Merkle path for {proof.product_id} does not reproduce its root",
            details={"root": proof.root, "product_id": proof.product_id},
        )


async def verify_proof_async(hasher: PoseidonHasher, proof: OracleMerkleProof) -> None:
    await asyncio.to_thread(verify_proof, hasher, proof)
