"""REST API endpoints for the tree service."""

import logging
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from zkmerkle import __version__
from zkmerkle.config import get_settings
from zkmerkle.core.merkle_tree import verify_merkle_proof
from zkmerkle.exceptions import (
    ConfigurationError,
    DeserializationError,
    IngestError,
    InvalidLeafIndexError,
    LeafNotFoundError,
    ServiceUnavailableError,
    SnapshotNotFoundError,
    TreeCapacityError,
    TreeStateError,
    ZKMerkleException,
)
from zkmerkle.models.schemas import (
    BatchProofsResponse,
    InitializeRequest,
    InitializeResponse,
    MerkleProofRecord,
    ProofRequest,
    SnapshotRequest,
    SnapshotResponse,
    TreeStateResponse,
    VerifyRequest,
    VerifyResponse,
    parse_scalar,
)
from zkmerkle.service import TreeService
from zkmerkle.storage import DatabaseManager, get_db_manager
from zkmerkle.utils.encoding import hex_to_field, leaves_to_bytes

# Configure logging
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    version: str = __version__


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    retryable: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# Initialize FastAPI
app = FastAPI(
    title="zk-merkle-tree REST API",
    description="Poseidon Merkle trees and inclusion proofs for zero-knowledge membership checks",
    version=__version__,
)

app.state.tree_service = TreeService(max_workers=get_settings().max_workers)


# Error code and HTTP status per domain error, most specific first
_ERROR_STATUS = [
    (ServiceUnavailableError, 503, "SERVICE_UNAVAILABLE"),
    (LeafNotFoundError, 404, "LEAF_NOT_FOUND"),
    (SnapshotNotFoundError, 404, "SNAPSHOT_NOT_FOUND"),
    (InvalidLeafIndexError, 400, "INVALID_LEAF_INDEX"),
    (TreeCapacityError, 413, "TREE_CAPACITY_EXCEEDED"),
    (TreeStateError, 409, "TREE_STATE"),
    (DeserializationError, 422, "CORRUPT_SNAPSHOT"),
    (IngestError, 400, "INVALID_LEAF_DATA"),
    (ConfigurationError, 400, "CONFIGURATION"),
]


@app.exception_handler(ZKMerkleException)
async def domain_exception_handler(request: Request, exc: ZKMerkleException):
    """Map the error taxonomy onto HTTP status codes."""
    for exc_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            break
    else:
        status_code, code = 500, "INTERNAL_ERROR"

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=str(exc),
            code=code,
            retryable=getattr(exc, "retryable", False),
        ).model_dump(),
    )


# Custom exception handler for validation errors - convert 422 to 400
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors (422) to 400 Bad Request."""
    error_messages = []

    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        error_messages.append(f"{field}: {error['msg']}")

    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(error_messages)}
    )


def get_service(request: Request) -> TreeService:
    """Get the tree service handle owned by this app."""
    return request.app.state.tree_service


def get_db() -> DatabaseManager:
    """Get database manager."""
    return get_db_manager()


def _leaf_buffer(leaves: List[str]) -> bytes:
    try:
        return leaves_to_bytes([hex_to_field(leaf) for leaf in leaves])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid leaf: {e}")


# ============================================================================
# Health & System Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check service health and status."""
    return HealthResponse(status="operational")


@app.get("/state", response_model=TreeStateResponse, tags=["System"])
def get_state(service: TreeService = Depends(get_service)):
    """Get the served tree's state."""
    return service.state()


@app.get("/", tags=["System"])
async def root():
    """API documentation root."""
    return {
        "name": "zk-merkle-tree REST API",
        "version": __version__,
        "endpoints": {
            "health": "/health",
            "state": "/state",
            "initialize": "POST /initialize",
            "proof": "POST /proof",
            "batch_proofs": "POST /batch-proofs",
            "verify": "POST /verify",
            "snapshots": "GET|POST /snapshots",
            "restore": "POST /snapshots/{id}/restore",
        },
    }


# ============================================================================
# Tree Endpoints
# ============================================================================


@app.post("/initialize", response_model=InitializeResponse, tags=["Tree"])
def initialize(request: InitializeRequest, service: TreeService = Depends(get_service)):
    """Build the served tree from the given leaves, replacing any previous one."""
    root_value = service.initialize(_leaf_buffer(request.leaves), request.depth)
    return InitializeResponse(root=root_value, depth=request.depth, num_leaves=len(request.leaves))


@app.post("/proof", tags=["Tree"])
def proof_for(request: ProofRequest, service: TreeService = Depends(get_service)):
    """Proof for one leaf of the served tree."""
    record = service.proof_for(_leaf_buffer([request.leaf]))
    return JSONResponse(content=MerkleProofRecord.model_validate_json(record).model_dump(by_alias=True))


@app.post("/batch-proofs", response_model=BatchProofsResponse, tags=["Tree"])
def batch_proofs(request: InitializeRequest, service: TreeService = Depends(get_service)):
    """Proofs for every leaf of a throwaway tree; the served tree is untouched."""
    if not request.leaves:
        raise HTTPException(status_code=400, detail="At least one leaf is required")

    records = [
        MerkleProofRecord.model_validate_json(record)
        for record in service.batch_proofs(_leaf_buffer(request.leaves), request.depth)
    ]
    response = BatchProofsResponse(root=records[0].root, proofs=records)
    return JSONResponse(content=response.model_dump(by_alias=True))


@app.post("/verify", response_model=VerifyResponse, tags=["Tree"])
def verify(request: VerifyRequest, service: TreeService = Depends(get_service)):
    """Check a proof against a candidate root."""
    try:
        proof = request.proof.to_proof()
        candidate_root = parse_scalar(request.root)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid proof record: {e}")

    return VerifyResponse(valid=verify_merkle_proof(candidate_root, proof, service.constants))


# ============================================================================
# Snapshot Endpoints
# ============================================================================


@app.post("/snapshots", response_model=SnapshotResponse, tags=["Snapshots"])
def create_snapshot(
    request: SnapshotRequest,
    service: TreeService = Depends(get_service),
    db: DatabaseManager = Depends(get_db),
):
    """Persist the served tree."""
    tree = service.tree()
    session = db.get_session()
    try:
        snapshot = db.save_tree(session, tree, label=request.label)
        return SnapshotResponse.model_validate(snapshot)
    finally:
        session.close()


@app.get("/snapshots", response_model=List[SnapshotResponse], tags=["Snapshots"])
def list_snapshots(limit: int = 50, db: DatabaseManager = Depends(get_db)):
    """List stored snapshots, newest first."""
    session = db.get_session()
    try:
        return [SnapshotResponse.model_validate(s) for s in db.list_snapshots(session, limit=limit)]
    finally:
        session.close()


@app.post("/snapshots/{snapshot_id}/restore", response_model=TreeStateResponse, tags=["Snapshots"])
def restore_snapshot(
    snapshot_id: int,
    service: TreeService = Depends(get_service),
    db: DatabaseManager = Depends(get_db),
):
    """Replace the served tree with a stored snapshot."""
    session = db.get_session()
    try:
        snapshot = db.get_snapshot(session, snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Snapshot not found: {snapshot_id}")
        service.restore(snapshot.tree_data)
    finally:
        session.close()

    logger.info("Served tree restored from snapshot %d", snapshot_id)
    return service.state()
