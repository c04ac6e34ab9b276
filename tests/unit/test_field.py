"""Tests for the secp256k1 base field."""

import pytest
from pydantic import ValidationError

from zkmerkle.crypto.field import FIELD_BYTES, MODULUS, Fq, to_field


class TestFieldConstruction:
    """Tests for building field elements."""

    def test_modulus_is_secp256k1_base_field(self):
        assert MODULUS == 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
        assert FIELD_BYTES == 32

    def test_values_are_reduced(self):
        assert Fq(value=MODULUS).value == 0
        assert Fq(value=MODULUS + 5).value == 5
        assert Fq(value=-1).value == MODULUS - 1

    def test_elements_are_immutable(self):
        element = Fq(value=1)
        with pytest.raises(ValidationError):
            element.value = 2

    def test_equality_and_hashing(self):
        assert Fq(value=7) == Fq(value=7)
        assert Fq(value=7) != Fq(value=8)
        assert len({Fq(value=7), Fq(value=7), Fq(value=8)}) == 2

    def test_str_is_decimal(self):
        assert str(Fq(value=1234)) == "1234"
        assert str(Fq.zero()) == "0"

    def test_to_field(self):
        assert to_field(5) == Fq(value=5)
        element = Fq(value=9)
        assert to_field(element) is element
        with pytest.raises(TypeError):
            to_field("5")
        with pytest.raises(TypeError):
            to_field(True)


class TestFieldArithmetic:
    """Tests for field operations."""

    def test_add_sub_wraps(self):
        top = Fq(value=MODULUS - 1)
        assert top + Fq(value=2) == Fq(value=1)
        assert Fq(value=1) - Fq(value=2) == top

    def test_mul_and_pow(self):
        assert Fq(value=3) * Fq(value=4) == Fq(value=12)
        assert Fq(value=2) ** 10 == Fq(value=1024)

    def test_inverse(self):
        a = Fq(value=123456789)
        assert a * a.inverse() == Fq(value=1)
        assert Fq(value=10) / Fq(value=5) == Fq(value=2)

    def test_zero_has_no_inverse(self):
        with pytest.raises(ZeroDivisionError):
            Fq.zero().inverse()

    def test_negation(self):
        assert -Fq(value=1) == Fq(value=MODULUS - 1)
        assert -Fq.zero() == Fq.zero()


class TestFieldBytes:
    """Tests for byte encodings."""

    def test_from_bytes_be_reduces(self):
        assert Fq.from_bytes_be(b"\x01\x00") == Fq(value=256)
        assert Fq.from_bytes_be(b"\xff" * 32) == Fq(value=2**256 - 1)
        assert Fq.from_bytes_be(b"\xff" * 32).value == 2**256 - 1 - MODULUS

    def test_canonical_round_trip(self):
        element = Fq(value=MODULUS - 12345)
        encoded = element.to_canonical_bytes()
        assert len(encoded) == 32
        assert encoded[0] == (MODULUS - 12345) & 0xFF
        assert Fq.from_canonical_bytes(encoded) == element

    def test_canonical_rejects_unreduced(self):
        with pytest.raises(ValueError):
            Fq.from_canonical_bytes(MODULUS.to_bytes(32, "little"))

    def test_canonical_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            Fq.from_canonical_bytes(b"\x00" * 31)

    def test_hex(self):
        assert Fq(value=255).to_hex() == "0x" + "00" * 31 + "ff"
