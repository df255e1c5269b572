"""
Module 02 - Leaf Encoding Unit Tests
Tests for core/merkle/leaf_encoding.py

Leaf bytes are checked literally for both layouts and both versions,
and every field is checked for width enforcement.
"""
import pytest

from core.crypto.hashing import keccak256
from core.merkle.leaf_encoding import (
    ANCHOR_LAYOUT,
    CANONICAL_LAYOUT,
    encode_leaf,
    encode_uint,
    generate_salt,
    get_layout,
    hash_leaf,
)
from core.schemas.errors import InvalidFieldWidthException
from core.schemas.versioning import UnsupportedLayoutError, UnsupportedLeafVersionError


SUBJECT = b"\x11" * 32


class TestCanonicalLayout:
    """Big-endian, 8-byte index, 16-byte salt."""

    def test_v1_literal_bytes(self):
        leaf = encode_leaf(1, SUBJECT, epoch_number=7, amount=1000, index=3)
        expected = (
            SUBJECT
            + b"\x00\x00\x00\x00\x00\x00\x00\x07"
            + b"\x00\x00\x00\x00\x00\x00\x03\xe8"
            + b"\x00\x00\x00\x00\x00\x00\x00\x03"
        )
        assert leaf == expected
        assert len(leaf) == 56 == CANONICAL_LAYOUT.leaf_size(1)

    def test_v2_appends_salt(self):
        salt = bytes(range(16))
        leaf = encode_leaf(2, SUBJECT, 7, 1000, 3, salt=salt)
        assert leaf[:56] == encode_leaf(1, SUBJECT, 7, 1000, 3)
        assert leaf[56:] == salt
        assert len(leaf) == 72 == CANONICAL_LAYOUT.leaf_size(2)

    def test_index_beyond_u32_fits(self):
        leaf = encode_leaf(1, SUBJECT, 1, 1, 2**32)
        assert leaf[48:] == b"\x00\x00\x00\x01\x00\x00\x00\x00"


class TestAnchorLayout:
    """Little-endian, u32 index, 32-byte salt."""

    def test_v2_literal_bytes(self):
        salt = b"\x22" * 32
        leaf = encode_leaf(2, SUBJECT, 7, 1000, 3, salt=salt, layout=ANCHOR_LAYOUT)
        expected = (
            SUBJECT
            + b"\x07\x00\x00\x00\x00\x00\x00\x00"
            + b"\xe8\x03\x00\x00\x00\x00\x00\x00"
            + b"\x03\x00\x00\x00"
            + salt
        )
        assert leaf == expected
        assert len(leaf) == 84 == ANCHOR_LAYOUT.leaf_size(2)

    def test_index_must_fit_u32(self):
        with pytest.raises(InvalidFieldWidthException) as exc_info:
            encode_leaf(1, SUBJECT, 1, 1, 2**32, layout=ANCHOR_LAYOUT)
        assert exc_info.value.details["field"] == "index"

    def test_layouts_hash_differently(self):
        a = hash_leaf(1, SUBJECT, 1, 1, 0)
        b = hash_leaf(1, SUBJECT, 1, 1, 0, layout=ANCHOR_LAYOUT)
        assert a != b


class TestFieldWidths:

    def test_amount_u64_max_ok(self):
        leaf = encode_leaf(1, SUBJECT, 1, 2**64 - 1, 0)
        assert leaf[40:48] == b"\xff" * 8

    def test_amount_overflow_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(1, SUBJECT, 1, 2**64, 0)

    def test_negative_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(1, SUBJECT, 1, -1, 0)

    def test_epoch_overflow_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(1, SUBJECT, 2**64, 1, 0)

    def test_bool_is_not_an_integer(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_uint(True, 8, "big", "amount")

    def test_float_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_uint(1.0, 8, "big", "amount")

    def test_short_subject_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(1, b"\x11" * 31, 1, 1, 0)

    def test_v2_requires_salt(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(2, SUBJECT, 1, 1, 0)

    def test_v1_forbids_salt(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(1, SUBJECT, 1, 1, 0, salt=b"\x00" * 16)

    def test_salt_width_checked(self):
        with pytest.raises(InvalidFieldWidthException):
            encode_leaf(2, SUBJECT, 1, 1, 0, salt=b"\x00" * 32)

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedLeafVersionError):
            encode_leaf(3, SUBJECT, 1, 1, 0)


class TestHashing:

    def test_hash_is_keccak_of_bytes(self):
        leaf = encode_leaf(1, SUBJECT, 7, 1000, 3)
        assert hash_leaf(1, SUBJECT, 7, 1000, 3) == keccak256(leaf)

    def test_salt_changes_hash(self):
        a = hash_leaf(2, SUBJECT, 7, 1000, 3, salt=b"\x00" * 16)
        b = hash_leaf(2, SUBJECT, 7, 1000, 3, salt=b"\x01" * 16)
        assert a != b

    def test_generate_salt_width(self):
        assert len(generate_salt(CANONICAL_LAYOUT)) == 16
        assert len(generate_salt(ANCHOR_LAYOUT)) == 32
        assert generate_salt() != generate_salt()


class TestLayoutLookup:

    def test_known(self):
        assert get_layout("canonical") is CANONICAL_LAYOUT
        assert get_layout("anchor") is ANCHOR_LAYOUT

    def test_unknown(self):
        with pytest.raises(UnsupportedLayoutError):
            get_layout("middle-endian")
