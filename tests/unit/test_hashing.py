"""
Module 02 - Hashing Unit Tests
Tests for core/crypto/hashing.py

1. keccak-256 known vectors (not NIST SHA3)
2. 32-byte hex encoding round trip and rejection of bad input
3. Wallet decoding from base58 and hex
4. V2 user key derivation
"""
import pytest

from core.crypto.hashing import (
    HASH_SIZE,
    bytes_to_wallet,
    from_hex32,
    hash_canonical,
    hash_concat,
    is_hex32,
    keccak256,
    to_hex32,
    user_key,
    wallet_to_bytes,
)
from core.schemas.canonical import dumps_canonical
from core.schemas.errors import ErrorCodes, InvalidFieldWidthException


EMPTY_KECCAK = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
ABC_KECCAK = "4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45"


class TestKeccak:
    """keccak-256 is the original Keccak, as used by the claim program."""

    def test_empty_input(self):
        assert keccak256(b"").hex() == EMPTY_KECCAK

    def test_abc(self):
        assert keccak256(b"abc").hex() == ABC_KECCAK

    def test_not_sha3(self):
        """NIST SHA3-256 of empty input differs."""
        assert keccak256(b"").hex() != (
            "a7ffc6f8bf1ed76651c14756a061d662f580ff4de43b49fa82d80a4b80f8434a"
        )

    def test_digest_size(self):
        assert len(keccak256(b"anything")) == HASH_SIZE

    def test_hash_concat_is_plain_concatenation(self):
        left, right = b"\x01" * 32, b"\x02" * 32
        assert hash_concat(left, right) == keccak256(left + right)
        assert hash_concat(left, right) != hash_concat(right, left)

    def test_hash_canonical_uses_canonical_json(self):
        obj = {"b": 2, "a": 1}
        assert hash_canonical(obj) == keccak256(dumps_canonical(obj).encode("utf-8"))
        assert hash_canonical({"a": 1, "b": 2}) == hash_canonical(obj)


class TestHex32:

    def test_round_trip(self):
        digest = keccak256(b"abc")
        text = to_hex32(digest)
        assert text == ABC_KECCAK
        assert from_hex32(text) == digest

    def test_accepts_0x_prefix(self):
        assert from_hex32("0x" + ABC_KECCAK) == keccak256(b"abc")

    def test_accepts_uppercase(self):
        assert from_hex32(ABC_KECCAK.upper()) == keccak256(b"abc")

    def test_to_hex32_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            to_hex32(b"\x00" * 31)

    @pytest.mark.parametrize("bad", ["", "00", "zz" * 32, ABC_KECCAK + "00", None])
    def test_from_hex32_rejects(self, bad):
        with pytest.raises(ValueError):
            from_hex32(bad)

    def test_is_hex32(self):
        assert is_hex32(ABC_KECCAK)
        assert not is_hex32(ABC_KECCAK[:-1])


class TestWallets:

    def test_base58_all_ones_is_zero_key(self):
        assert wallet_to_bytes("1" * 32) == b"\x00" * 32

    def test_base58_round_trip(self):
        key = bytes(range(32))
        assert wallet_to_bytes(bytes_to_wallet(key)) == key

    def test_hex_wallet(self):
        assert wallet_to_bytes("ab" * 32) == b"\xab" * 32

    def test_short_wallet_rejected(self):
        with pytest.raises(InvalidFieldWidthException) as exc_info:
            wallet_to_bytes(bytes_to_wallet(b"\x05" * 20))
        assert exc_info.value.code == ErrorCodes.INVALID_FIELD_WIDTH

    def test_invalid_base58_rejected(self):
        # '0', 'O', 'I' and 'l' are not in the base58 alphabet
        with pytest.raises(InvalidFieldWidthException):
            wallet_to_bytes("0OIl" * 8)

    def test_empty_wallet_rejected(self):
        with pytest.raises(InvalidFieldWidthException):
            wallet_to_bytes("")


class TestUserKey:

    def test_is_keccak_of_utf8(self):
        assert user_key("user-1") == keccak256(b"user-1")

    def test_unicode(self):
        assert user_key("ユーザー") == keccak256("ユーザー".encode("utf-8"))

    def test_distinct_users_distinct_keys(self):
        assert user_key("a") != user_key("b")
