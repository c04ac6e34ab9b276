"""Encoding and decoding utilities."""

from typing import List

from zkmerkle.crypto.field import FIELD_BYTES, Fq
from zkmerkle.exceptions import InvalidLeafDataError

ADDRESS_BYTES = 20


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith(("0x", "0X")):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    return bytes.fromhex(hex_str)


def hex_to_field(hex_str: str) -> Fq:
    """
    Decode a hex scalar of at most 32 bytes into a field element.

    Raises:
        ValueError: If the string is not hex or longer than 32 bytes
    """
    data = hex_to_bytes(hex_str.strip())
    if not data:
        raise ValueError("Empty hex value")
    if len(data) > FIELD_BYTES:
        raise ValueError(f"Value is {len(data)} bytes, at most {FIELD_BYTES} allowed")
    return Fq.from_bytes_be(data)


def field_to_address(element: Fq) -> str:
    """
    Render the low 20 bytes of an element as a '0x' address.

    Addresses enter the tree as 20-byte big-endian integers, so this inverts
    `hex_to_field` for them.
    """
    return bytes_to_hex(element.to_bytes_be()[FIELD_BYTES - ADDRESS_BYTES :])


def split_leaf_bytes(buffer: bytes) -> List[bytes]:
    """
    Split a flat buffer into 32-byte chunks.

    Raises:
        InvalidLeafDataError: If the buffer length is not a multiple of 32
    """
    if len(buffer) % FIELD_BYTES != 0:
        raise InvalidLeafDataError(
            f"Leaf buffer length {len(buffer)} is not a multiple of {FIELD_BYTES}"
        )
    return [buffer[i : i + FIELD_BYTES] for i in range(0, len(buffer), FIELD_BYTES)]


def leaves_from_bytes(buffer: bytes) -> List[Fq]:
    """
    Decode 32-byte big-endian chunks into field elements, reduced modulo q.

    Raises:
        InvalidLeafDataError: If the buffer length is not a multiple of 32
    """
    return [Fq.from_bytes_be(chunk) for chunk in split_leaf_bytes(buffer)]


def leaves_to_bytes(leaves: List[Fq]) -> bytes:
    """Inverse of `leaves_from_bytes` for already reduced elements."""
    return b"".join(leaf.to_bytes_be() for leaf in leaves)
