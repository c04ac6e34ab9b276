"""Batch proof generation for a fixed-depth tree."""

import logging
from typing import List, Optional, Sequence

from zkmerkle.core.merkle_tree import MerkleProof, MerkleTree
from zkmerkle.crypto.field import Fq, FqLike, to_field
from zkmerkle.crypto.poseidon import PoseidonConstants, secp256k1_w3
from zkmerkle.exceptions import TreeCapacityError

logger = logging.getLogger(__name__)

MAX_DEPTH = 32


def check_capacity(num_leaves: int, depth: int) -> int:
    """
    Validate a depth and the number of leaves it must hold.

    Returns:
        int: The capacity, 2**depth

    Raises:
        ValueError: If depth is out of range
        TreeCapacityError: If there are more leaves than the depth holds
    """
    if depth < 0 or depth > MAX_DEPTH:
        raise ValueError(f"Tree depth must be between 0 and {MAX_DEPTH}")

    capacity = 1 << depth
    if num_leaves > capacity:
        raise TreeCapacityError(
            f"{num_leaves} leaves do not fit a depth-{depth} tree (max {capacity})"
        )
    return capacity


def build_tree(
    leaves: Sequence[FqLike],
    depth: int,
    constants: Optional[PoseidonConstants] = None,
    zero_subtree_shortcut: bool = True,
    max_workers: Optional[int] = None,
) -> MerkleTree:
    """
    Build a finalized tree padded to exactly 2**depth leaves.

    Raises:
        ValueError: If depth is out of range
        TreeCapacityError: If there are more leaves than the depth holds
    """
    capacity = check_capacity(len(leaves), depth)

    tree = MerkleTree(
        constants or secp256k1_w3(),
        zero_subtree_shortcut=zero_subtree_shortcut,
        max_workers=max_workers,
    )
    for leaf in leaves:
        tree.insert(leaf)
    # Pad the leaves to equal the size of the tree
    for _ in range(capacity - len(leaves)):
        tree.insert(Fq.zero())

    tree.finalize()
    return tree


def get_proofs(
    leaves: Sequence[FqLike],
    depth: int,
    constants: Optional[PoseidonConstants] = None,
    max_workers: Optional[int] = None,
) -> List[MerkleProof]:
    """
    Build a Merkle tree from the given leaves and return a proof for each.

    Proofs are derived by position, so repeated values each get the path of
    their own slot.
    """
    leaves = [to_field(leaf) for leaf in leaves]
    tree = build_tree(leaves, depth, constants, max_workers=max_workers)

    logger.info("Creating %d proofs against root %s", len(leaves), tree.root)
    return [tree.create_proof_at(i) for i in range(len(leaves))]
