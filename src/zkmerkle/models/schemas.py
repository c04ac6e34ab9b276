"""Pydantic data models for proof records and the HTTP API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zkmerkle.core.merkle_tree import MerkleProof
from zkmerkle.crypto.field import MODULUS, Fq
from zkmerkle.utils.encoding import field_to_address, hex_to_bytes


def parse_scalar(value: str) -> Fq:
    """
    Parse a canonical scalar: decimal digits, or hex when prefixed with '0x'.

    Raises:
        ValueError: If the value is not an integer in [0, q)
    """
    if value.startswith(("0x", "0X")):
        data = hex_to_bytes(value)
        if not data:
            raise ValueError("Empty hex value")
        scalar = int.from_bytes(data, "big")
    elif value.isascii() and value.isdigit():
        scalar = int(value)
    else:
        raise ValueError(f"Not a non-negative integer: {value!r}")

    if scalar >= MODULUS:
        raise ValueError("Scalar is not below the field modulus")
    return Fq(value=scalar)


def parse_marker(value: str) -> int:
    """Path marker: '0' for a left child, '1' for a right child."""
    if value not in ("0", "1"):
        raise ValueError(f"Path marker must be '0' or '1', got {value!r}")
    return int(value)


class ProofPath(BaseModel):
    """Sibling values and path markers, in circuit input layout."""

    model_config = ConfigDict(populate_by_name=True)

    siblings: List[List[str]] = Field(
        ..., description="Sibling values bottom-up, each wrapped in a one-element list"
    )
    path_indices: List[str] = Field(
        ..., alias="pathIndices", description="0 if the node is a left child, 1 if right"
    )

    @field_validator("siblings")
    @classmethod
    def single_element_groups(cls, v: List[List[str]]) -> List[List[str]]:
        if any(len(group) != 1 for group in v):
            raise ValueError("Each sibling group must hold exactly one value for arity 2")
        return v

    @classmethod
    def from_proof(cls, proof: MerkleProof) -> "ProofPath":
        return cls(
            siblings=[[str(sibling)] for sibling in proof.siblings],
            path_indices=[str(marker) for marker in proof.path_indices],
        )


class MerkleProofRecord(ProofPath):
    """A proof as a JSON object: leaf, siblings, pathIndices and root."""

    root: str = Field(..., description="Root as a decimal scalar")
    leaf: str = Field(..., description="Leaf as a decimal or 0x-hex scalar")

    @classmethod
    def from_proof(cls, proof: MerkleProof) -> "MerkleProofRecord":
        """Format a proof; scalars are rendered in decimal."""
        return cls(
            siblings=[[str(sibling)] for sibling in proof.siblings],
            path_indices=[str(marker) for marker in proof.path_indices],
            root=str(proof.root),
            leaf=str(proof.leaf),
        )

    def to_proof(self) -> MerkleProof:
        """
        Parse the record back into a proof.

        Raises:
            ValueError: If a scalar is out of range or a marker is not 0 or 1
        """
        return MerkleProof(
            leaf=parse_scalar(self.leaf),
            siblings=[parse_scalar(group[0]) for group in self.siblings],
            path_indices=[parse_marker(marker) for marker in self.path_indices],
            root=parse_scalar(self.root),
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class AddressProofRecord(BaseModel):
    """Per-address entry of a proofs file written by `zkmerkle save-proofs`."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., description="0x-prefixed 20-byte address")
    merkle_proof: ProofPath = Field(..., alias="merkleProof")

    @classmethod
    def from_proof(cls, proof: MerkleProof) -> "AddressProofRecord":
        return cls(address=field_to_address(proof.leaf), merkle_proof=ProofPath.from_proof(proof))


# ============================================================================
# HTTP API models
# ============================================================================


class InitializeRequest(BaseModel):
    """Request model for building the served tree."""

    leaves: List[str] = Field(..., description="Leaves as 0x-hex scalars of at most 32 bytes")
    depth: int = Field(..., ge=0, le=32, description="Tree depth; capacity is 2**depth")


class InitializeResponse(BaseModel):
    """Response model for initialize."""

    root: str = Field(..., description="Root as a decimal scalar")
    depth: int
    num_leaves: int = Field(..., description="Number of supplied (unpadded) leaves")


class ProofRequest(BaseModel):
    """Request model for a single proof."""

    leaf: str = Field(..., description="Leaf as a 0x-hex scalar")


class BatchProofsResponse(BaseModel):
    """Proofs for every supplied leaf of a throwaway tree."""

    root: str
    proofs: List[MerkleProofRecord]


class VerifyRequest(BaseModel):
    """Request model for proof verification."""

    root: str = Field(..., description="Candidate root, decimal or 0x-hex")
    proof: MerkleProofRecord


class VerifyResponse(BaseModel):
    """Response model for proof verification."""

    valid: bool


class TreeStateResponse(BaseModel):
    """Response model for the served tree's state."""

    initialized: bool
    poisoned: bool = False
    root: Optional[str] = None
    depth: Optional[int] = None
    num_leaves: int = Field(default=0, description="Padded leaf count")


class SnapshotRequest(BaseModel):
    """Request model for storing the served tree."""

    label: Optional[str] = Field(default=None, max_length=255)


class SnapshotResponse(BaseModel):
    """A stored tree snapshot."""

    id: int
    root: str
    depth: int
    num_leaves: int
    label: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
