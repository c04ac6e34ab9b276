"""
Lock-guarded tree handle for callers that hold state between requests.

A `TreeService` owns at most one finalized tree. Every operation takes the
handle's lock for its whole duration, so a proof request never observes a
half-built tree: it waits behind any `initialize` in flight.

Poisoning:
    If an operation fails with an unexpected error while holding the lock,
    the held state can no longer be trusted. The handle is marked poisoned,
    the original error propagates to that caller, and every later call
    raises `ServiceUnavailableError` until `reset()` is called. Domain
    errors (unknown leaf, bad input, wrong lifecycle state) are raised
    before any state changes and do not poison the handle.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from zkmerkle.core.merkle_tree import MerkleTree
from zkmerkle.core.proofs import build_tree, check_capacity, get_proofs
from zkmerkle.crypto.field import FIELD_BYTES, Fq
from zkmerkle.crypto.poseidon import PoseidonConstants, secp256k1_w3
from zkmerkle.exceptions import (
    InvalidLeafDataError,
    ServiceUnavailableError,
    TreeNotInitializedError,
    ZKMerkleException,
)
from zkmerkle.models.schemas import MerkleProofRecord, TreeStateResponse
from zkmerkle.utils.encoding import leaves_from_bytes

logger = logging.getLogger(__name__)


class TreeService:
    """Explicit handle around one tree; create one per independent caller."""

    def __init__(
        self,
        constants: Optional[PoseidonConstants] = None,
        max_workers: Optional[int] = None,
    ):
        self.constants = constants or secp256k1_w3()
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._tree: Optional[MerkleTree] = None
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        with self._lock:
            if self._poisoned:
                raise ServiceUnavailableError(
                    "Tree service is unavailable after an earlier failure; reset() to recover"
                )
            try:
                yield
            except ZKMerkleException:
                raise
            except Exception:
                self._poisoned = True
                logger.error("Tree service poisoned during %s", operation, exc_info=True)
                raise

    def _require_tree(self) -> MerkleTree:
        if self._tree is None:
            raise TreeNotInitializedError("No tree has been initialized")
        return self._tree

    def initialize(self, leaf_bytes: bytes, depth: int) -> str:
        """
        Replace the held tree with one built from `leaf_bytes`.

        Args:
            leaf_bytes: Concatenated 32-byte big-endian leaf values
            depth: Tree depth; leaves are zero-padded to 2**depth

        Returns:
            str: The new root in decimal
        """
        leaves = leaves_from_bytes(leaf_bytes)
        check_capacity(len(leaves), depth)
        with self._guard("initialize"):
            self._tree = None
            self._tree = build_tree(leaves, depth, self.constants, max_workers=self.max_workers)
            logger.info("Initialized tree with %d leaves at depth %d", len(leaves), depth)
            return str(self._tree.root)

    def proof_for(self, leaf_bytes: bytes) -> str:
        """
        Proof record (JSON) for one leaf of the held tree.

        Raises:
            InvalidLeafDataError: If `leaf_bytes` is not exactly one 32-byte value
            TreeNotInitializedError: If `initialize` has not been called
            LeafNotFoundError: If the value is not a leaf of the held tree
        """
        if len(leaf_bytes) != FIELD_BYTES:
            raise InvalidLeafDataError(f"Leaf must be {FIELD_BYTES} bytes, got {len(leaf_bytes)}")
        leaf = Fq.from_bytes_be(leaf_bytes)

        with self._guard("proof_for"):
            proof = self._require_tree().create_proof(leaf)
            return MerkleProofRecord.from_proof(proof).to_json()

    def batch_proofs(self, leaf_bytes: bytes, depth: int) -> List[str]:
        """
        Proof records for every leaf of a throwaway tree.

        The held tree is not read or replaced.
        """
        leaves = leaves_from_bytes(leaf_bytes)
        check_capacity(len(leaves), depth)
        with self._guard("batch_proofs"):
            proofs = get_proofs(leaves, depth, self.constants, max_workers=self.max_workers)
            return [MerkleProofRecord.from_proof(proof).to_json() for proof in proofs]

    def tree(self) -> MerkleTree:
        """The held tree, for read-only use such as verification."""
        with self._guard("tree"):
            return self._require_tree()

    def snapshot(self) -> bytes:
        """Serialized form of the held tree."""
        with self._guard("snapshot"):
            return self._require_tree().serialize()

    def restore(self, data: bytes) -> str:
        """
        Replace the held tree with a deserialized one.

        Returns:
            str: The restored root in decimal
        """
        tree = MerkleTree.deserialize(data)
        with self._guard("restore"):
            self._tree = tree
            logger.info("Restored tree with root %s", tree.root)
            return str(tree.root)

    def state(self) -> TreeStateResponse:
        """Describe the handle without taking part in poisoning."""
        with self._lock:
            if self._tree is None:
                return TreeStateResponse(initialized=False, poisoned=self._poisoned)
            return TreeStateResponse(
                initialized=True,
                poisoned=self._poisoned,
                root=str(self._tree.root),
                depth=self._tree.depth,
                num_leaves=len(self._tree),
            )

    def reset(self) -> None:
        """Drop the held tree and clear a poisoned state."""
        with self._lock:
            if self._poisoned:
                logger.warning("Resetting poisoned tree service")
            self._tree = None
            self._poisoned = False
