"""
Module 02 - Hashing Utilities
Keccak-256 hashing and hex/subject-key helpers for reward commitments.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- keccak-256 hashing for raw bytes (the on-chain verifier's hash)
- Canonical hashing for objects (via dumps_canonical)
- Hex encoding/decoding of 32-byte digests
- Subject-key derivation for wallet and user-id based leaves

Security/Determinism Notes:
- Always hash raw bytes exactly as specified
- No domain-separation prefix is added to leaves or nodes; the verifier
  hashes the plain concatenation
- All operations are deterministic
"""
from __future__ import annotations

import re
from typing import Any

import base58
from eth_utils import keccak

from core.schemas.canonical import dumps_canonical
from core.schemas.errors import InvalidFieldWidthException


HASH_SIZE = 32

_HEX32_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def keccak256(data: bytes) -> bytes:
    """
    Compute keccak-256 hash of raw bytes.

    This is the original Keccak padding used by Solana's ``hashv`` keccak
    module and by Ethereum, not NIST SHA3-256.

    Example:
        >>> keccak256(b"").hex()
        'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
    """
    return keccak(data)


def hash_concat(left: bytes, right: bytes) -> bytes:
    """
    Hash the concatenation of two byte sequences.

    parent = keccak256(left + right)
    """
    return keccak256(left + right)


def hash_canonical(obj: Any) -> bytes:
    """
    Hash an object using canonical JSON serialization.

    Used for build fingerprints, never for leaves: leaves have a fixed
    binary layout (see core.merkle.leaf_encoding).

    Rule: digest = keccak256(dumps_canonical(obj).encode("utf-8"))
    """
    canonical_json = dumps_canonical(obj)
    return keccak256(canonical_json.encode("utf-8"))


def to_hex32(data: bytes) -> str:
    """
    Encode a 32-byte digest as 64 lowercase hex characters, no prefix.

    This is the storage and wire form of roots, leaves and siblings.
    """
    if len(data) != HASH_SIZE:
        raise ValueError(f"Expected {HASH_SIZE} bytes, got {len(data)}")
    return data.hex()


def from_hex32(hex_string: str) -> bytes:
    """
    Decode a 64-char hex digest (optional 0x prefix) into 32 bytes.

    Raises:
        ValueError: If the string is not exactly 32 bytes of hex
    """
    if not isinstance(hex_string, str) or not _HEX32_RE.match(hex_string.strip()):
        raise ValueError(f"Invalid 32-byte hex string: {str(hex_string)[:16]}...")
    value = hex_string.strip()
    if value.startswith("0x"):
        value = value[2:]
    return bytes.fromhex(value)


def is_hex32(value: str) -> bool:
    return isinstance(value, str) and bool(_HEX32_RE.match(value.strip()))


def wallet_to_bytes(wallet: str) -> bytes:
    """
    Decode a wallet address to its 32-byte public key.

    Accepts base58 (Solana style) or 64-char hex with optional 0x.

    Raises:
        InvalidFieldWidthException: If the wallet does not decode to 32 bytes
    """
    value = (wallet or "").strip()
    if is_hex32(value):
        return from_hex32(value)
    try:
        decoded = base58.b58decode(value)
    except ValueError as e:
        raise InvalidFieldWidthException(
            f"Wallet is not valid base58: {value[:12]}",
            field_name="subject_key",
            width=HASH_SIZE,
        ) from e
    if len(decoded) != HASH_SIZE:
        raise InvalidFieldWidthException(
            f"Wallet must decode to {HASH_SIZE} bytes, got {len(decoded)}",
            field_name="subject_key",
            width=HASH_SIZE,
        )
    return decoded


def bytes_to_wallet(data: bytes) -> str:
    """Encode a 32-byte public key as base58."""
    return base58.b58encode(data).decode("ascii")


def user_key(user_id: str) -> bytes:
    """
    Derive the opaque V2 subject key for a user.

    user_key = keccak256(utf8(user_id))
    """
    return keccak256(user_id.encode("utf-8"))


__all__ = [
    "HASH_SIZE",
    "keccak256",
    "hash_concat",
    "hash_canonical",
    "to_hex32",
    "from_hex32",
    "is_hex32",
    "wallet_to_bytes",
    "bytes_to_wallet",
    "user_key",
]
