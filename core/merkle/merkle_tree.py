"""
Module 02 - Merkle Tree Implementation
Deterministic Merkle tree construction, proof generation, and verification.

Owner: Protocol/Crypto Engineer
Module ID: M02

Canonical Commitment Rules (Hard Contracts, must match the claim program):
1. Leaf hashing: leaf = keccak256(encode_leaf(...))
   - Implemented via core.merkle.leaf_encoding.hash_leaf()
2. Parent hashing: parent = keccak256(left + right)
3. Operand order: by index parity. A node at an even index is the left
   operand, at an odd index the right operand. Hashes are never sorted.
4. Padding rule: Duplicate last node if odd number at any level
5. Single leaf: root = leaf (the leaf hash itself)
6. Empty leaves: no tree; building one is an error

Determinism Notes:
- No randomness or non-deterministic ordering
- Leaf ordering is defined upstream by the epoch builder's index assignment
- This module never sorts leaves - it trusts input order
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from core.crypto.hashing import hash_concat
from core.schemas.errors import InvalidIndexException


@dataclass(frozen=True)
class ProofStep:
    """
    One level of an inclusion proof.

    Attributes:
        sibling: The sibling hash at this level
        is_left: True when the sibling is the left operand
    """
    sibling: bytes
    is_left: bool


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle proof for a single leaf in a Merkle tree.

    Attributes:
        leaf: The leaf hash being proven
        index: The 0-based index of the leaf in the original leaf list
        steps: Sibling hashes with their sides, from leaf to root
        root: The Merkle root this proof is against
    """
    leaf: bytes
    index: int
    steps: list[ProofStep] = field(default_factory=list)
    root: bytes = b""

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")

    @property
    def siblings(self) -> list[bytes]:
        return [step.sibling for step in self.steps]

    @property
    def directions(self) -> list[bool]:
        return [step.is_left for step in self.steps]


def merkle_parent(left: bytes, right: bytes) -> bytes:
    """Compute the parent hash of two child nodes: keccak256(left + right)."""
    return hash_concat(left, right)


def build_merkle_layers(leaves: Sequence[bytes]) -> list[list[bytes]]:
    """
    Build every level of the tree, leaves first, root last.

    Padding is applied when pairing, so stored levels keep their
    real (unpadded) node counts.

    Raises:
        ValueError: If leaves is empty
    """
    if len(leaves) == 0:
        raise ValueError("Cannot build Merkle tree from empty leaf list")

    layers: list[list[bytes]] = [list(leaves)]
    while len(layers[-1]) > 1:
        level = layers[-1]
        next_level: list[bytes] = []
        for i in range(0, len(level), 2):
            left = level[i]
            right = level[i + 1] if i + 1 < len(level) else level[i]
            next_level.append(merkle_parent(left, right))
        layers.append(next_level)
    return layers


def build_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """
    Build a Merkle root from a sequence of leaf hashes.

    Example: [a, b, c] -> [a, b, c, c] -> [parent(a,b), parent(c,c)]
    """
    return build_merkle_layers(leaves)[-1][0]


def _proof_from_layers(layers: list[list[bytes]], index: int) -> MerkleProof:
    leaf_count = len(layers[0])
    if index < 0 or index >= leaf_count:
        raise InvalidIndexException(index, leaf_count)

    steps: list[ProofStep] = []
    current_index = index
    for level in layers[:-1]:
        sibling_index = current_index ^ 1
        if sibling_index >= len(level):
            # Odd level: the last node is paired with itself
            sibling_index = current_index
        steps.append(
            ProofStep(sibling=level[sibling_index], is_left=current_index % 2 == 1)
        )
        current_index //= 2

    return MerkleProof(
        leaf=layers[0][index],
        index=index,
        steps=steps,
        root=layers[-1][0],
    )


def build_merkle_proof(leaves: Sequence[bytes], index: int) -> MerkleProof:
    """
    Generate a Merkle proof for the leaf at the given index.

    Raises:
        InvalidIndexException: If index is out of range (also an IndexError)
        ValueError: If leaves is empty
    """
    return _proof_from_layers(build_merkle_layers(leaves), index)


def fold_proof(leaf: bytes, steps: Sequence[ProofStep]) -> bytes:
    """Fold a leaf hash with each proof step in order."""
    current_hash = leaf
    for step in steps:
        if step.is_left:
            current_hash = merkle_parent(step.sibling, current_hash)
        else:
            current_hash = merkle_parent(current_hash, step.sibling)
    return current_hash


def verify_merkle_proof(proof: MerkleProof) -> bool:
    """Verify a proof: the folded leaf must equal the claimed root."""
    return fold_proof(proof.leaf, proof.steps) == proof.root


def verify_merkle_path(
    leaf: bytes,
    index: int,
    siblings: Sequence[bytes],
    root: bytes,
) -> bool:
    """
    Verify a leaf using only its index and sibling list.

    This mirrors the claim program exactly: at each level an even index
    makes the running hash the left operand, then the index shifts right.
    """
    if index < 0:
        return False
    current_hash = leaf
    current_index = index
    for sibling in siblings:
        if current_index % 2 == 0:
            current_hash = merkle_parent(current_hash, sibling)
        else:
            current_hash = merkle_parent(sibling, current_hash)
        current_index >>= 1
    return current_hash == root


def compute_tree_depth(num_leaves: int) -> int:
    """
    Compute the depth of a Merkle tree with given number of leaves.

    A single leaf has depth 1, two leaves have depth 2, etc.
    """
    if num_leaves == 0:
        return 0
    depth = 1
    n = num_leaves
    while n > 1:
        n = (n + 1) // 2
        depth += 1
    return depth


class MerkleTree:
    """
    An immutable Merkle tree over an ordered list of leaf hashes.

    Example:
        >>> tree = MerkleTree(leaves)
        >>> proof = tree.proof(1)
        >>> tree.verify(proof)
        True
    """

    def __init__(self, leaves: Sequence[bytes]) -> None:
        self._layers = build_merkle_layers(leaves)

    @property
    def root(self) -> bytes:
        return self._layers[-1][0]

    @property
    def leaves(self) -> list[bytes]:
        return list(self._layers[0])

    @property
    def leaf_count(self) -> int:
        return len(self._layers[0])

    @property
    def depth(self) -> int:
        return len(self._layers)

    def proof(self, index: int) -> MerkleProof:
        """Inclusion proof for the leaf at ``index``."""
        return _proof_from_layers(self._layers, index)

    def verify(self, proof: MerkleProof) -> bool:
        """Check a proof against this tree's root."""
        return proof.root == self.root and verify_merkle_proof(proof)


__all__ = [
    "ProofStep",
    "MerkleProof",
    "MerkleTree",
    "merkle_parent",
    "build_merkle_layers",
    "build_merkle_root",
    "build_merkle_proof",
    "fold_proof",
    "verify_merkle_proof",
    "verify_merkle_path",
    "compute_tree_depth",
]
