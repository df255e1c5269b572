"""
Module 02 - Merkle Tree and Commitments
Deterministic reward-leaf encoding, Merkle tree construction and
proof generation/verification.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- encode_leaf / hash_leaf: fixed-width leaf bytes and their keccak hash
- MerkleTree / MerkleProof / ProofStep
- build_merkle_root, build_merkle_proof, verify_merkle_proof
- MerkleProver / MerkleVerifier convenience classes

Canonical Commitment Rules:
1. Leaf hashing: keccak256(encode_leaf(...))
2. Parent hashing: keccak256(left + right), operand order by index parity
3. Padding: Duplicate last node if odd number at any level
4. Empty tree: error
5. Single leaf: root = leaf

Usage:
    from core.merkle import MerkleTree, hash_leaf

    leaves = [hash_leaf(2, key, epoch, amount, i, salt) for i, ... in ...]
    tree = MerkleTree(leaves)
    proof = tree.proof(2)
    assert tree.verify(proof)
"""
from .leaf_encoding import (
    ANCHOR_LAYOUT,
    CANONICAL_LAYOUT,
    LeafLayout,
    encode_leaf,
    encode_uint,
    generate_salt,
    get_layout,
    hash_leaf,
)

from .merkle_tree import (
    MerkleProof,
    MerkleTree,
    ProofStep,
    build_merkle_layers,
    build_merkle_proof,
    build_merkle_root,
    compute_tree_depth,
    fold_proof,
    merkle_parent,
    verify_merkle_path,
    verify_merkle_proof,
)

from .merkle_proofs import (
    MerkleProver,
    MerkleVerifier,
    proof_from_json,
    proof_to_json,
    siblings_from_hex,
    siblings_to_hex,
)


__all__ = [
    # Leaf encoding
    "ANCHOR_LAYOUT",
    "CANONICAL_LAYOUT",
    "LeafLayout",
    "encode_leaf",
    "encode_uint",
    "generate_salt",
    "get_layout",
    "hash_leaf",
    # Core types
    "MerkleProof",
    "MerkleTree",
    "ProofStep",
    # Core functions
    "merkle_parent",
    "build_merkle_layers",
    "build_merkle_root",
    "build_merkle_proof",
    "fold_proof",
    "verify_merkle_proof",
    "verify_merkle_path",
    "compute_tree_depth",
    # Serialisation and convenience classes
    "proof_to_json",
    "proof_from_json",
    "siblings_to_hex",
    "siblings_from_hex",
    "MerkleProver",
    "MerkleVerifier",
]
