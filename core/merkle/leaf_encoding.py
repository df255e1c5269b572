"""
Module 02 - Leaf Encoding
Canonical fixed-width byte layout for one reward entry.

Owner: Protocol/Crypto Engineer
Module ID: M02

Leaf bytes are a fixed-order concatenation of fixed-width fields:

    V1: subject_key(32) | epoch(8) | amount(8) | index
    V2: V1 | salt

Two byte layouts exist:
- canonical: big-endian, 8-byte index, 16-byte salt
- anchor:    little-endian, 4-byte (u32) index, 32-byte salt; this is the
             layout the deployed claim program hashes with ``hashv``

The leaf hash is keccak256(leaf bytes). No prefix or domain tag is added.
Values never get truncated or coerced: anything that does not fit its
field raises InvalidFieldWidthException.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from core.crypto.hashing import HASH_SIZE, keccak256
from core.schemas.errors import InvalidFieldWidthException
from core.schemas.versioning import (
    LAYOUT_ANCHOR,
    LAYOUT_CANONICAL,
    LEAF_VERSION_V1,
    LEAF_VERSION_V2,
    UnsupportedLayoutError,
    assert_supported_leaf_version,
)


SUBJECT_WIDTH = HASH_SIZE
EPOCH_WIDTH = 8
AMOUNT_WIDTH = 8


@dataclass(frozen=True)
class LeafLayout:
    """Byte order and variable field widths of a leaf encoding."""
    name: str
    byteorder: str
    index_width: int
    salt_width: int

    def leaf_size(self, version: int) -> int:
        size = SUBJECT_WIDTH + EPOCH_WIDTH + AMOUNT_WIDTH + self.index_width
        if version == LEAF_VERSION_V2:
            size += self.salt_width
        return size


CANONICAL_LAYOUT = LeafLayout(
    name=LAYOUT_CANONICAL,
    byteorder="big",
    index_width=8,
    salt_width=16,
)

ANCHOR_LAYOUT = LeafLayout(
    name=LAYOUT_ANCHOR,
    byteorder="little",
    index_width=4,
    salt_width=32,
)

_LAYOUTS = {
    CANONICAL_LAYOUT.name: CANONICAL_LAYOUT,
    ANCHOR_LAYOUT.name: ANCHOR_LAYOUT,
}


def get_layout(name: str) -> LeafLayout:
    """Look up a layout by name."""
    try:
        return _LAYOUTS[name]
    except KeyError:
        raise UnsupportedLayoutError(name) from None


def encode_uint(value: int, width: int, byteorder: str, field_name: str) -> bytes:
    """
    Encode an unsigned integer into exactly ``width`` bytes.

    Raises:
        InvalidFieldWidthException: On negative values, overflow or non-int input
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldWidthException(
            f"{field_name} must be an integer, got {type(value).__name__}",
            field_name=field_name,
            width=width,
        )
    if value < 0 or value >= 1 << (8 * width):
        raise InvalidFieldWidthException(
            f"{field_name}={value} does not fit in {width} unsigned bytes",
            field_name=field_name,
            width=width,
        )
    return value.to_bytes(width, byteorder)


def _fixed_bytes(value: bytes, width: int, field_name: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != width:
        got = len(value) if isinstance(value, (bytes, bytearray)) else type(value).__name__
        raise InvalidFieldWidthException(
            f"{field_name} must be exactly {width} bytes, got {got}",
            field_name=field_name,
            width=width,
        )
    return bytes(value)


def encode_leaf(
    version: int,
    subject_key: bytes,
    epoch_number: int,
    amount: int,
    index: int,
    salt: Optional[bytes] = None,
    layout: LeafLayout = CANONICAL_LAYOUT,
) -> bytes:
    """
    Build the canonical leaf bytes for one reward entry.

    Args:
        version: Leaf schema version (1 or 2)
        subject_key: 32-byte wallet key (V1) or user key (V2)
        epoch_number: Epoch the entry belongs to (u64)
        amount: Allocation in the smallest unit (u64)
        index: Dense leaf index
        salt: Per-leaf nonce, required for V2 and forbidden for V1
        layout: Byte layout (canonical or anchor)

    Returns:
        Leaf bytes, ready for hashing

    Raises:
        InvalidFieldWidthException: If any field does not fit its width
    """
    assert_supported_leaf_version(version)
    order = layout.byteorder
    parts = [
        _fixed_bytes(subject_key, SUBJECT_WIDTH, "subject_key"),
        encode_uint(epoch_number, EPOCH_WIDTH, order, "epoch_number"),
        encode_uint(amount, AMOUNT_WIDTH, order, "amount"),
        encode_uint(index, layout.index_width, order, "index"),
    ]
    if version == LEAF_VERSION_V2:
        if salt is None:
            raise InvalidFieldWidthException(
                "V2 leaves require a salt",
                field_name="salt",
                width=layout.salt_width,
            )
        parts.append(_fixed_bytes(salt, layout.salt_width, "salt"))
    elif salt is not None:
        raise InvalidFieldWidthException(
            "V1 leaves carry no salt",
            field_name="salt",
            width=0,
        )
    return b"".join(parts)


def hash_leaf(
    version: int,
    subject_key: bytes,
    epoch_number: int,
    amount: int,
    index: int,
    salt: Optional[bytes] = None,
    layout: LeafLayout = CANONICAL_LAYOUT,
) -> bytes:
    """keccak256 of the encoded leaf."""
    return keccak256(
        encode_leaf(version, subject_key, epoch_number, amount, index, salt, layout)
    )


def generate_salt(layout: LeafLayout = CANONICAL_LAYOUT) -> bytes:
    """Cryptographically random per-leaf salt sized for the layout."""
    return secrets.token_bytes(layout.salt_width)


__all__ = [
    "SUBJECT_WIDTH",
    "EPOCH_WIDTH",
    "AMOUNT_WIDTH",
    "LeafLayout",
    "CANONICAL_LAYOUT",
    "ANCHOR_LAYOUT",
    "get_layout",
    "encode_uint",
    "encode_leaf",
    "hash_leaf",
    "generate_salt",
    "LEAF_VERSION_V1",
    "LEAF_VERSION_V2",
]
