"""
Merkle tree over secp256k1 base field elements, hashed with Poseidon.

The tree is built once from an ordered list of leaves and is immutable
afterwards. Proofs it produces are meant to be checked inside a
zero-knowledge circuit, so node compression uses the circuit-friendly
Poseidon permutation rather than a byte-oriented hash.

Lifecycle:
    - Building: leaves are appended with `insert()`; no proofs.
    - Ready: `finalize()` pads the leaves to a power of two, builds every
      layer and stores the root. Proof derivation, verification and
      serialization are available; insertion is not.

Path markers:
    A marker of 0 means the proven node is the LEFT child at that level and
    its sibling is on the right. A marker of 1 means it is the RIGHT child.
    `create_proof` and `verify_proof` both rely on `_order_pair` for this.

Example:
    Building a tree and checking membership::

        from zkmerkle import MerkleTree, Fq, secp256k1_w3

        tree = MerkleTree(secp256k1_w3())
        for value in (1, 2, 3, 4):
            tree.insert(Fq(value=value))
        tree.finalize()

        proof = tree.create_proof(Fq(value=3))
        assert tree.verify_proof(tree.root, proof)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from zkmerkle.crypto.field import Fq, FqLike, to_field
from zkmerkle.crypto.poseidon import Poseidon, PoseidonConstants
from zkmerkle.exceptions import (
    InvalidLeafIndexError,
    LeafNotFoundError,
    TreeFinalizedError,
    TreeNotReadyError,
    UnsupportedArityError,
)

logger = logging.getLogger(__name__)

SUPPORTED_ARITY = 2


@dataclass
class MerkleProof:
    """Merkle tree inclusion proof."""

    leaf: Fq
    siblings: List[Fq] = field(default_factory=list)
    path_indices: List[int] = field(default_factory=list)
    root: Optional[Fq] = None

    @property
    def depth(self) -> int:
        return len(self.siblings)


def _order_pair(node: Fq, sibling: Fq, marker: int) -> Tuple[Fq, Fq]:
    """Place the running node and its sibling in (left, right) order."""
    if marker == 0:
        return node, sibling
    return sibling, node


def _replay(hasher: Poseidon, proof: MerkleProof) -> Optional[Fq]:
    """
    Recompute the root implied by a proof, or None if the proof is malformed.
    """
    if len(proof.siblings) != len(proof.path_indices):
        return None

    node = proof.leaf
    for sibling, marker in zip(proof.siblings, proof.path_indices):
        if marker not in (0, 1):
            return None
        node = hasher.hash(_order_pair(node, sibling, marker))
    return node


def verify_merkle_proof(root: FqLike, proof: MerkleProof, constants: PoseidonConstants) -> bool:
    """
    Verify a proof without holding the tree it came from.

    Args:
        root: Root the proof must hash up to
        proof: Leaf, siblings and path markers
        constants: Poseidon configuration the tree was built with

    Returns:
        bool: True if replaying the path reproduces `root`
    """
    return _replay(Poseidon(constants), proof) == to_field(root)


class MerkleTree:
    """
    Binary Poseidon Merkle tree with a zero-subtree shortcut.

    Most inputs are far smaller than the padded capacity (2^15 leaves for the
    address lists this was written for), so the bulk of the tree is zero
    padding. The hash of an all-zero subtree of every depth is computed once
    and reused for every padded pair instead of being recomputed.
    """

    def __init__(
        self,
        constants: PoseidonConstants,
        zero_subtree_shortcut: bool = True,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize an empty tree in the Building state.

        Args:
            constants: Poseidon configuration; its width fixes the arity
            zero_subtree_shortcut: Reuse cached all-zero subtree hashes
            max_workers: Thread pool size for layer construction

        Raises:
            UnsupportedArityError: If the configured arity is not 2
        """
        if constants.arity != SUPPORTED_ARITY:
            raise UnsupportedArityError(
                f"Only arity {SUPPORTED_ARITY} is supported, got {constants.arity}"
            )

        self.constants = constants
        self.poseidon = Poseidon(constants)
        self.zero_subtree_shortcut = zero_subtree_shortcut
        self.max_workers = max_workers

        self.leaves: List[Fq] = []
        self.layers: List[List[Fq]] = []
        self.depth: Optional[int] = None
        self._root: Optional[Fq] = None
        self._zero_hashes: List[Fq] = []
        self._leaf_index: Optional[Dict[Fq, int]] = None
        self._is_ready = False

    @property
    def arity(self) -> int:
        return self.constants.arity

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def root(self) -> Fq:
        """Get the Merkle root; only defined once the tree is finalized."""
        self._require_ready()
        return self._root

    @property
    def zero_hashes(self) -> List[Fq]:
        """Root of an all-zero subtree, indexed by subtree depth."""
        self._require_ready()
        return list(self._zero_hashes)

    def _require_ready(self) -> None:
        if not self._is_ready:
            raise TreeNotReadyError("Tree is not ready; call finalize() first")

    def insert(self, leaf: FqLike) -> int:
        """
        Append a leaf to the bottom layer.

        Args:
            leaf: Field element (or int, reduced into the field)

        Returns:
            int: Index assigned to the leaf

        Raises:
            TreeFinalizedError: If the tree was already finalized
        """
        if self._is_ready:
            raise TreeFinalizedError("Cannot insert into a finalized tree")

        self.leaves.append(to_field(leaf))
        return len(self.leaves) - 1

    def _hash_pair(self, left: Fq, right: Fq) -> Fq:
        # Each task gets its own scratch state.
        return self.poseidon.clone().hash((left, right))

    def _build_zero_hashes(self, depth: int) -> List[Fq]:
        zero_hashes = [Fq.zero()]
        for level in range(depth):
            zero_hashes.append(self.poseidon.hash((zero_hashes[level], zero_hashes[level])))
        return zero_hashes

    def _parent(self, level: int, left: Fq, right: Fq) -> Fq:
        if self.zero_subtree_shortcut:
            zero = self._zero_hashes[level]
            if left == zero and right == zero:
                return self._zero_hashes[level + 1]
        return self._hash_pair(left, right)

    def finalize(self) -> Fq:
        """
        Pad the leaves, build every layer and compute the root.

        Returns:
            Fq: The root

        Raises:
            TreeFinalizedError: If called more than once
        """
        if self._is_ready:
            raise TreeFinalizedError("Tree is already finalized")

        # Pad the leaves to a power of 2
        padded_len = 1
        while padded_len < len(self.leaves):
            padded_len <<= 1
        self.leaves.extend([Fq.zero()] * (padded_len - len(self.leaves)))

        self.depth = padded_len.bit_length() - 1
        self._zero_hashes = self._build_zero_hashes(self.depth)
        self.layers = self._build_layers(self.leaves)
        self._root = self.layers[-1][0]
        self._is_ready = True

        logger.info(
            "Finalized tree: depth=%d leaves=%d root=%s", self.depth, padded_len, self._root
        )
        return self._root

    def _build_layers(self, leaves: List[Fq]) -> List[List[Fq]]:
        layers = [list(leaves)]
        current_layer = layers[0]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for level in range(self.depth):
                lefts = current_layer[0::2]
                rights = current_layer[1::2]
                levels = [level] * len(lefts)

                # map() returns only once every pair of this level is done
                layer_above = list(executor.map(self._parent, levels, lefts, rights))

                logger.debug("Built level %d with %d nodes", level + 1, len(layer_above))
                layers.append(layer_above)
                current_layer = layer_above

        return layers

    def _index_of(self, leaf: Fq) -> int:
        if self._leaf_index is None:
            index: Dict[Fq, int] = {}
            for i, value in enumerate(self.leaves):
                index.setdefault(value, i)
            self._leaf_index = index

        try:
            return self._leaf_index[leaf]
        except KeyError:
            raise LeafNotFoundError(f"Leaf not found: {leaf}") from None

    def create_proof(self, leaf: FqLike) -> MerkleProof:
        """
        Create a proof for the given leaf value.

        If the value occurs more than once, the proof is for its first index;
        use `create_proof_at` to choose a specific position.

        Raises:
            TreeNotReadyError: If the tree is not finalized
            LeafNotFoundError: If the value is not a leaf of the padded tree
        """
        self._require_ready()
        leaf = to_field(leaf)
        return self.create_proof_at(self._index_of(leaf))

    def create_proof_at(self, leaf_index: int) -> MerkleProof:
        """
        Create a proof for the leaf stored at `leaf_index`.

        Raises:
            TreeNotReadyError: If the tree is not finalized
            InvalidLeafIndexError: If the index is outside the padded leaves
        """
        self._require_ready()
        if leaf_index < 0 or leaf_index >= len(self.leaves):
            raise InvalidLeafIndexError(f"Invalid leaf index: {leaf_index}")

        siblings: List[Fq] = []
        path_indices: List[int] = []
        position = leaf_index

        for level in range(self.depth):
            sibling_position = position ^ 1
            siblings.append(self.layers[level][sibling_position])
            path_indices.append(position & 1)
            position >>= 1

        return MerkleProof(
            leaf=self.leaves[leaf_index],
            siblings=siblings,
            path_indices=path_indices,
            root=self._root,
        )

    def verify_proof(self, root: FqLike, proof: MerkleProof) -> bool:
        """
        Verify the proof against the given root.

        Raises:
            TreeNotReadyError: If the tree is not finalized
        """
        self._require_ready()
        return _replay(self.poseidon.clone(), proof) == to_field(root)

    def serialize(self) -> bytes:
        """Encode the complete finalized tree."""
        from zkmerkle.core.codec import encode_tree

        self._require_ready()
        return encode_tree(self)

    @classmethod
    def deserialize(cls, data: bytes) -> "MerkleTree":
        """Rebuild a finalized tree from `serialize()` output without rehashing."""
        from zkmerkle.core.codec import decode_tree

        return decode_tree(data)

    @classmethod
    def _restore(
        cls,
        constants: PoseidonConstants,
        depth: int,
        leaves: List[Fq],
        layers: List[List[Fq]],
        zero_hashes: Sequence[Fq],
    ) -> "MerkleTree":
        tree = cls(constants)
        tree.leaves = leaves
        tree.layers = layers
        tree.depth = depth
        tree._zero_hashes = list(zero_hashes)
        tree._root = layers[-1][0]
        tree._is_ready = True
        return tree

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return len(self.leaves)

    def __repr__(self) -> str:
        """String representation of the tree."""
        if not self._is_ready:
            return f"MerkleTree(building, leaves={len(self.leaves)})"
        return (
            f"MerkleTree(depth={self.depth}, "
            f"leaves={len(self.leaves)}, "
            f"root={str(self._root)[:16]}...)"
        )
