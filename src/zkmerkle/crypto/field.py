"""Core definition of the secp256k1 base field Fq."""

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =================================================================
# Field Constants
#
# Leaves are Ethereum addresses, so the field is the base field of the
# secp256k1 curve. Every 20-byte address fits without reduction.
# =================================================================

MODULUS: int = 2**256 - 2**32 - 977
"""The secp256k1 base field prime: p = 2^256 - 2^32 - 977"""

MODULUS_BITS: int = 256
"""The number of bits in the prime p."""

FIELD_BYTES: int = (MODULUS_BITS + 7) // 8
"""The size of a field element in bytes."""


class Fq(BaseModel):
    """An element in the secp256k1 base field F_q."""

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    value: int = Field(ge=0, lt=MODULUS, description="Field element value in the range [0, q)")

    @field_validator("value", mode="before")
    @classmethod
    def reduce_modulo_q(cls, v: int) -> int:
        """Reduces an integer input modulo q before validation."""
        return v % MODULUS

    @classmethod
    def zero(cls) -> "Fq":
        """The additive identity, used as padding."""
        return cls(value=0)

    @classmethod
    def from_bytes_be(cls, data: bytes) -> "Fq":
        """
        Interpret big-endian bytes as an integer and reduce it modulo q.

        This is how raw 32-byte leaf chunks and decoded addresses enter the field.
        """
        return cls(value=int.from_bytes(data, "big"))

    @classmethod
    def from_canonical_bytes(cls, data: bytes) -> "Fq":
        """
        Decode the canonical 32-byte little-endian form.

        Raises:
            ValueError: If the length is wrong or the value is not reduced.
        """
        if len(data) != FIELD_BYTES:
            raise ValueError(f"Field element must be {FIELD_BYTES} bytes, got {len(data)}")
        value = int.from_bytes(data, "little")
        if value >= MODULUS:
            raise ValueError("Field element is not in canonical form")
        return cls(value=value)

    def to_canonical_bytes(self) -> bytes:
        """Encode as 32 bytes little-endian."""
        return self.value.to_bytes(FIELD_BYTES, "little")

    def to_bytes_be(self) -> bytes:
        """Encode as 32 bytes big-endian."""
        return self.value.to_bytes(FIELD_BYTES, "big")

    def to_hex(self) -> str:
        """Big-endian hex with a '0x' prefix, zero-padded to 32 bytes."""
        return "0x" + self.to_bytes_be().hex()

    def __add__(self, other: "Fq") -> "Fq":
        """Field addition."""
        return self.__class__(value=self.value + other.value)

    def __sub__(self, other: "Fq") -> "Fq":
        """Field subtraction."""
        return self.__class__(value=self.value - other.value)

    def __neg__(self) -> "Fq":
        """Field negation."""
        return self.__class__(value=-self.value)

    def __mul__(self, other: "Fq") -> "Fq":
        """Field multiplication."""
        return self.__class__(value=self.value * other.value)

    def __pow__(self, exponent: int) -> "Fq":
        """Field exponentiation."""
        return self.__class__(value=pow(self.value, exponent, MODULUS))

    def inverse(self) -> "Fq":
        """Computes the multiplicative inverse."""
        if self.value == 0:
            raise ZeroDivisionError("Cannot invert the zero element.")
        # a^(q-2) is the multiplicative inverse of a in F_q
        return self ** (MODULUS - 2)

    def __truediv__(self, other: "Fq") -> "Fq":
        """Field division."""
        return self * other.inverse()

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        """Decimal representation, as used in proof records."""
        return str(self.value)


FqLike = Union[Fq, int]


def to_field(value: FqLike) -> Fq:
    """Coerce an int or an existing element into Fq."""
    if isinstance(value, Fq):
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected Fq or int, got {type(value).__name__}")
    return Fq(value=value)
