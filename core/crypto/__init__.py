"""
Core cryptographic utilities.

Module 02 provides the keccak-256 hash primitive and subject-key helpers.
"""
from .hashing import (
    HASH_SIZE,
    keccak256,
    hash_concat,
    hash_canonical,
    to_hex32,
    from_hex32,
    is_hex32,
    wallet_to_bytes,
    bytes_to_wallet,
    user_key,
)

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
