"""
Module 02 - Merkle Proofs Convenience Wrappers
Hex (de)serialisation of proofs and entry-level verification.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- proof_to_json / proof_from_json: storage form of a proof
- MerkleProver: build proofs for reward leaves
- MerkleVerifier: verify proofs given raw leaf fields, the way the
  claim program does before paying out
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from core.crypto.hashing import from_hex32, to_hex32
from core.merkle.leaf_encoding import CANONICAL_LAYOUT, LeafLayout, hash_leaf
from core.merkle.merkle_tree import (
    MerkleProof,
    MerkleTree,
    ProofStep,
    build_merkle_proof,
    verify_merkle_path,
    verify_merkle_proof,
)
from core.schemas.errors import InvalidFieldWidthException


def proof_to_json(proof: MerkleProof) -> list[dict[str, Any]]:
    """Serialise proof steps as ``[{"sibling": hex, "is_left": bool}, ...]``."""
    return [
        {"sibling": to_hex32(step.sibling), "is_left": step.is_left}
        for step in proof.steps
    ]


def proof_from_json(
    steps: Sequence[dict[str, Any]],
    leaf: bytes,
    index: int,
    root: bytes,
) -> MerkleProof:
    """Rebuild a MerkleProof from its stored JSON steps."""
    return MerkleProof(
        leaf=leaf,
        index=index,
        steps=[
            ProofStep(sibling=from_hex32(s["sibling"]), is_left=bool(s["is_left"]))
            for s in steps
        ],
        root=root,
    )


def siblings_to_hex(proof: MerkleProof) -> list[str]:
    return [to_hex32(s) for s in proof.siblings]


def siblings_from_hex(hex_siblings: Sequence[str]) -> list[bytes]:
    """
    Decode a client-supplied sibling list.

    Raises:
        ValueError: If any element is not a 32-byte hex digest
    """
    return [from_hex32(h) for h in hex_siblings]


class MerkleProver:
    """
    Convenience class for generating proofs over reward leaves.

    Example:
        >>> proof = MerkleProver.prove(leaves, index=1)
        >>> proof.leaf == leaves[1]
        True
    """

    @staticmethod
    def prove(leaves: Sequence[bytes], index: int) -> MerkleProof:
        """
        Generate a Merkle proof for the leaf at the given index.

        Raises:
            InvalidIndexException: If index is out of range
            ValueError: If leaves is empty
        """
        return build_merkle_proof(leaves, index)

    @staticmethod
    def prove_all(leaves: Sequence[bytes]) -> tuple[bytes, list[MerkleProof]]:
        """Build the tree once and return its root plus every leaf's proof."""
        tree = MerkleTree(leaves)
        return tree.root, [tree.proof(i) for i in range(tree.leaf_count)]


class MerkleVerifier:
    """
    Convenience class for verifying Merkle proofs.

    ``verify_entry`` recomputes the leaf from its fields and folds the
    sibling list by index parity, so it accepts exactly what the claim
    program accepts.
    """

    @staticmethod
    def verify(proof: MerkleProof) -> bool:
        return verify_merkle_proof(proof)

    @staticmethod
    def verify_leaf_in_root(
        leaf: bytes,
        index: int,
        siblings: Sequence[bytes],
        root: bytes,
    ) -> bool:
        return verify_merkle_path(leaf, index, siblings, root)

    @staticmethod
    def verify_entry(
        version: int,
        subject_key: bytes,
        epoch_number: int,
        amount: int,
        index: int,
        siblings: Sequence[bytes],
        root: bytes,
        salt: Optional[bytes] = None,
        layout: LeafLayout = CANONICAL_LAYOUT,
    ) -> bool:
        """
        Verify a reward entry against a root.

        Returns False instead of raising when the fields cannot be encoded,
        since an unencodable entry is never included.
        """
        try:
            leaf = hash_leaf(version, subject_key, epoch_number, amount, index, salt, layout)
        except InvalidFieldWidthException:
            return False
        return verify_merkle_path(leaf, index, siblings, root)


__all__ = [
    "proof_to_json",
    "proof_from_json",
    "siblings_to_hex",
    "siblings_from_hex",
    "MerkleProver",
    "MerkleVerifier",
]
