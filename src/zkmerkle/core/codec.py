"""
Binary persistence format for finalized Merkle trees.

Layout::

    magic    4 bytes   b"ZKMT"
    version  1 byte
    body     zlib-compressed:
        width u8 | rounds_f u16 | rounds_p u16 | alpha u8 | domain_tag u32
        round constants   (rounds_f + rounds_p) * width elements
        mds matrix        width * width elements
        depth u8
        zero hashes       depth + 1 elements
        leaf count u64 | leaves
        layer count u8 | per layer: length u64 | elements
        root              1 element

Integers are big-endian. Field elements are 32-byte little-endian and must be
canonical (below the modulus). Padding regions are long runs of identical
elements, which is why the body is compressed.

Decoding checks every structural invariant but never hashes; a tree loaded
from bytes is trusted to be the tree that was written.
"""

import io
import struct
import zlib
from typing import TYPE_CHECKING, List

from zkmerkle.crypto.field import FIELD_BYTES, Fq
from zkmerkle.crypto.poseidon import PoseidonConstants
from zkmerkle.exceptions import DeserializationError, SerializationError, UnsupportedArityError

if TYPE_CHECKING:
    from zkmerkle.core.merkle_tree import MerkleTree

MAGIC = b"ZKMT"
FORMAT_VERSION = 1
COMPRESSION_LEVEL = 9

_HEADER = struct.Struct(">4sB")
_HASH_CONFIG = struct.Struct(">BHHBI")
_U8 = struct.Struct(">B")
_U64 = struct.Struct(">Q")


class _Reader:
    """Bounded reader that turns short reads into DeserializationError."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)
        self._size = len(data)

    def take(self, n: int) -> bytes:
        chunk = self._buffer.read(n)
        if len(chunk) != n:
            raise DeserializationError(f"Truncated tree data: wanted {n} bytes, got {len(chunk)}")
        return chunk

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    def element(self) -> Fq:
        try:
            return Fq.from_canonical_bytes(self.take(FIELD_BYTES))
        except ValueError as e:
            raise DeserializationError(f"Invalid field element: {e}") from e

    def elements(self, count: int) -> List[Fq]:
        # Refuse counts that cannot possibly fit before allocating.
        if count * FIELD_BYTES > self.remaining():
            raise DeserializationError(f"Truncated tree data: {count} elements declared")
        return [self.element() for _ in range(count)]

    def remaining(self) -> int:
        return self._size - self._buffer.tell()


def _write_elements(out: io.BytesIO, elements: List[Fq]) -> None:
    for element in elements:
        out.write(element.to_canonical_bytes())


def encode_tree(tree: "MerkleTree") -> bytes:
    """
    Serialize a finalized tree.

    Raises:
        SerializationError: If the tree cannot be represented in this format
    """
    constants = tree.constants
    body = io.BytesIO()

    try:
        body.write(
            _HASH_CONFIG.pack(
                constants.width,
                constants.rounds_f,
                constants.rounds_p,
                constants.alpha,
                tree.poseidon.domain_tag,
            )
        )
        _write_elements(body, constants.round_constants)
        for row in constants.mds_matrix:
            _write_elements(body, row)

        body.write(_U8.pack(tree.depth))
        _write_elements(body, tree.zero_hashes)

        body.write(_U64.pack(len(tree.leaves)))
        _write_elements(body, tree.leaves)

        body.write(_U8.pack(len(tree.layers)))
        for layer in tree.layers:
            body.write(_U64.pack(len(layer)))
            _write_elements(body, layer)

        _write_elements(body, [tree.root])
    except struct.error as e:
        raise SerializationError(f"Tree does not fit the persistence format: {e}") from e

    return _HEADER.pack(MAGIC, FORMAT_VERSION) + zlib.compress(body.getvalue(), COMPRESSION_LEVEL)


def decode_tree(data: bytes) -> "MerkleTree":
    """
    Rebuild a finalized tree from `encode_tree` output.

    Raises:
        DeserializationError: If the bytes are malformed, truncated or inconsistent
    """
    from zkmerkle.core.merkle_tree import MerkleTree

    if len(data) < _HEADER.size:
        raise DeserializationError("Truncated tree data: missing header")

    magic, version = _HEADER.unpack(data[: _HEADER.size])
    if magic != MAGIC:
        raise DeserializationError("Not a serialized Merkle tree (bad magic)")
    if version != FORMAT_VERSION:
        raise DeserializationError(f"Unsupported tree format version: {version}")

    decompressor = zlib.decompressobj()
    try:
        body = decompressor.decompress(data[_HEADER.size :])
    except zlib.error as e:
        raise DeserializationError(f"Corrupt tree body: {e}") from e
    if not decompressor.eof:
        raise DeserializationError("Truncated tree data: compressed body is incomplete")
    if decompressor.unused_data:
        raise DeserializationError(
            f"{len(decompressor.unused_data)} trailing bytes after compressed body"
        )

    reader = _Reader(body)

    width, rounds_f, rounds_p, alpha, domain_tag = reader.unpack(_HASH_CONFIG)
    round_constants = reader.elements((rounds_f + rounds_p) * width)
    mds_matrix = [reader.elements(width) for _ in range(width)]
    try:
        constants = PoseidonConstants(
            width=width,
            rounds_f=rounds_f,
            rounds_p=rounds_p,
            alpha=alpha,
            round_constants=round_constants,
            mds_matrix=mds_matrix,
        )
    except ValueError as e:
        raise DeserializationError(f"Invalid hash configuration: {e}") from e

    (depth,) = reader.unpack(_U8)
    zero_hashes = reader.elements(depth + 1)

    (num_leaves,) = reader.unpack(_U64)
    if num_leaves != 1 << depth:
        raise DeserializationError(f"Leaf count {num_leaves} does not match depth {depth}")
    leaves = reader.elements(num_leaves)

    (num_layers,) = reader.unpack(_U8)
    if num_layers != depth + 1:
        raise DeserializationError(f"Layer count {num_layers} does not match depth {depth}")

    layers: List[List[Fq]] = []
    for level in range(num_layers):
        (length,) = reader.unpack(_U64)
        if length != 1 << (depth - level):
            raise DeserializationError(f"Layer {level} has unexpected length {length}")
        layers.append(reader.elements(length))

    root = reader.element()

    if reader.remaining():
        raise DeserializationError(f"{reader.remaining()} trailing bytes after tree data")
    if layers[0] != leaves:
        raise DeserializationError("Bottom layer does not match the leaf sequence")
    if layers[-1][0] != root:
        raise DeserializationError("Stored root does not match the top layer")
    if zero_hashes[0] != Fq.zero():
        raise DeserializationError("Zero-subtree table must start with the zero element")

    try:
        tree = MerkleTree._restore(constants, depth, leaves, layers, zero_hashes)
    except UnsupportedArityError as e:
        raise DeserializationError(str(e)) from e

    tree.poseidon.domain_tag = domain_tag
    tree.poseidon.reset()
    return tree
