"""
Tests for oracle Merkle proof verification.
"""
from dataclasses import replace

import pytest

from pricepilot.crypto.field import to_hex32
from pricepilot.crypto.merkle import compute_root, verify_proof, verify_proof_async
from pricepilot.exceptions import InvalidMerkleProofError
from tests.conftest import make_merkle_proof, make_price_tree


class TestComputeRoot:
    def test_left_and_right_children(self, hasher):
        """Index 0 hashes (node, sibling); index 1 hashes (sibling, node)."""
        assert compute_root(hasher, 1, [2], [0]) == hasher.hash([1, 2])
        assert compute_root(hasher, 1, [2], [1]) == hasher.hash([2, 1])

    def test_length_mismatch(self, hasher):
        with pytest.raises(InvalidMerkleProofError):
            compute_root(hasher, 1, [2, 3], [0])

    def test_bad_index(self, hasher):
        with pytest.raises(InvalidMerkleProofError):
            compute_root(hasher, 1, [2], [2])


class TestVerifyProof:
    """Tests for verify_proof against a four-leaf tree."""

    @pytest.mark.parametrize("index", [0, 1, 2, 3])
    def test_every_leaf_verifies(self, hasher, index):
        verify_proof(hasher, make_merkle_proof(hasher, index=index))

    def test_hex_leaf_without_decimal_form(self, hasher):
        proof = replace(make_merkle_proof(hasher), leaf_big_int=None)
        verify_proof(hasher, proof)

    def test_wrong_root(self, hasher):
        proof = replace(make_merkle_proof(hasher), root=to_hex32(12345))
        with pytest.raises(InvalidMerkleProofError) as exc:
            verify_proof(hasher, proof)
        assert exc.value.details["product_id"] == "MACBOOK"

    def test_tampered_sibling(self, hasher):
        proof = make_merkle_proof(hasher)
        proof = replace(proof, siblings=(to_hex32(1), proof.siblings[1]))
        with pytest.raises(InvalidMerkleProofError):
            verify_proof(hasher, proof)

    def test_root_matches_tree(self, hasher):
        root, _ = make_price_tree(hasher, [101, 202, 303, 404])
        assert make_merkle_proof(hasher).root == to_hex32(root)

    @pytest.mark.anyio
    async def test_async_variant(self, hasher):
        await verify_proof_async(hasher, make_merkle_proof(hasher, index=2))
