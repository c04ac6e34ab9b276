"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "zk-merkle-tree Team"
__description__ = "Poseidon Merkle trees and inclusion proofs for zero-knowledge membership checks"

from .crypto.field import Fq
from .crypto.poseidon import Poseidon, PoseidonConstants, secp256k1_w3
from .core.merkle_tree import MerkleTree, MerkleProof, verify_merkle_proof
from .core.proofs import build_tree, get_proofs
from .service import TreeService

__all__ = [
    "Fq",
    "Poseidon",
    "PoseidonConstants",
    "secp256k1_w3",
    "MerkleTree",
    "MerkleProof",
    "verify_merkle_proof",
    "build_tree",
    "get_proofs",
    "TreeService",
]
