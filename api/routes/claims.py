"""
Module 09D - Claim Routes

User-facing claim endpoints. The caller is identified by the
``X-User-Id`` header set by the fronting auth layer.

GET  /claims                   - claim history
GET  /claims/history.csv       - claim history as CSV
GET  /claims/claimable         - proof bundles for every epoch still claimable
GET  /claims/{epoch}           - one claim's state
GET  /claims/{epoch}/proof     - Merkle proof bundle for the caller's leaf
POST /claims/{epoch}/begin     - PENDING -> PROCESSING
POST /claims/{epoch}/confirm   - PROCESSING -> CONFIRMED (settlement verified on-chain)
"""

import logging

from fastapi import APIRouter, Depends, Path
from fastapi.responses import Response

from api.deps import get_engine, require_user
from api.errors import NotFoundError
from api.models.requests import BeginClaimRequest, ConfirmClaimRequest
from api.models.responses import (
    ClaimableListResponse,
    ClaimListResponse,
    ClaimResponse,
    ProofResponse,
)
from core.claims.export import claims_to_csv
from core.engine import RewardEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])


@router.get("", response_model=ClaimListResponse)
def list_claims(
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimListResponse:
    return ClaimListResponse(claims=engine.claims.history(user_id))


@router.get("/history.csv")
def export_claims(
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> Response:
    """Claim history as an RFC 4180 CSV attachment."""
    body = claims_to_csv(engine.claims.history(user_id))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="claims.csv"'},
    )


@router.get("/claimable", response_model=ClaimableListResponse)
def list_claimable(
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimableListResponse:
    """Published epochs the caller has not yet claimed, each with its proof bundle."""
    bundles = engine.claims.claimables(user_id)
    return ClaimableListResponse(
        claimables=bundles,
        total_amount=sum(b.amount for b in bundles),
    )


@router.get("/{epoch}", response_model=ClaimResponse)
def get_claim(
    epoch: int = Path(..., ge=1),
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimResponse:
    claim = engine.claims.get_claim(user_id, epoch)
    if claim is None:
        raise NotFoundError("No claim for this epoch", {"epoch_number": epoch})
    return ClaimResponse(claim=claim)


@router.get("/{epoch}/proof", response_model=ProofResponse)
def get_proof(
    epoch: int = Path(..., ge=1),
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ProofResponse:
    """
    Everything the client needs to submit the on-chain claim.

    Only served once the epoch root is published.
    """
    return ProofResponse(proof=engine.claims.get_proof(user_id, epoch, published_only=True))


@router.post("/{epoch}/begin", response_model=ClaimResponse)
def begin_claim(
    body: BeginClaimRequest,
    epoch: int = Path(..., ge=1),
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimResponse:
    claim = engine.claims.begin_claim(user_id, epoch, index=body.index, proof=body.proof)
    return ClaimResponse(claim=claim)


@router.post("/{epoch}/confirm", response_model=ClaimResponse)
def confirm_claim(
    body: ConfirmClaimRequest,
    epoch: int = Path(..., ge=1),
    user_id: str = Depends(require_user),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimResponse:
    """
    Record a settled claim once its transaction is verified on-chain.

    Without a settlement RPC this returns 503 SETTLEMENT_NOT_CONFIGURED and
    claims are confirmed by an operator. A transaction that is not yet
    confirmed returns a retryable 503.
    """
    claim = engine.claims.settle(user_id, epoch, body.tx_sig, body.amount)
    return ClaimResponse(claim=claim)
