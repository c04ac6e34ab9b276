"""Custom exceptions for the zk-merkle-tree system."""


class ZKMerkleException(Exception):
    """Base exception for all zk-merkle-tree errors."""
    pass


# Configuration Errors
class ConfigurationError(ZKMerkleException):
    """Base exception for invalid tree or hash configuration."""
    pass


class UnsupportedArityError(ConfigurationError):
    """Raised when the hash configuration implies an arity other than 2."""
    pass


# Tree Lifecycle Errors
class TreeStateError(ZKMerkleException):
    """Base exception for operations called in the wrong lifecycle state."""
    pass


class TreeNotReadyError(TreeStateError):
    """Raised when a proof operation is invoked before finalization."""
    pass


class TreeFinalizedError(TreeStateError):
    """Raised when a finalized tree is asked to accept leaves or finalize again."""
    pass


class TreeNotInitializedError(TreeStateError):
    """Raised when a service handle is asked for a proof before initialize."""
    pass


# Merkle Tree Errors
class MerkleTreeError(ZKMerkleException):
    """Base exception for Merkle tree data errors."""
    pass


class LeafNotFoundError(MerkleTreeError):
    """Raised when the requested leaf is absent from the finalized leaf set."""
    pass


class InvalidLeafIndexError(MerkleTreeError):
    """Raised when leaf index is invalid."""
    pass


class TreeCapacityError(MerkleTreeError):
    """Raised when more leaves are supplied than the requested depth holds."""
    pass


# Storage Errors
class StorageError(ZKMerkleException):
    """Base exception for storage errors."""
    pass


class SerializationError(StorageError):
    """Raised when serialization fails."""
    pass


class DeserializationError(StorageError):
    """Raised when persisted tree bytes are malformed or truncated."""
    pass


class SnapshotNotFoundError(StorageError):
    """Raised when a stored tree snapshot does not exist."""
    pass


# Ingestion Errors
class IngestError(ZKMerkleException):
    """Base exception for leaf ingestion errors."""
    pass


class InvalidLeafDataError(IngestError):
    """Raised when a raw leaf buffer cannot be split into field elements."""
    pass


class InvalidRecordError(IngestError):
    """Raised when a single input record cannot be turned into a leaf."""
    pass


# Service Errors
class ServiceError(ZKMerkleException):
    """Base exception for tree service errors."""

    retryable = False


class ServiceUnavailableError(ServiceError):
    """Raised when a tree service handle was poisoned by an earlier fault."""

    retryable = True
