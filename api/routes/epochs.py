"""
Module 09D - Epoch Routes

Public epoch listing plus operator endpoints for building and
publishing epochs. Operator endpoints require the admin secret.
"""

import logging

from fastapi import APIRouter, Depends, Path, Query

from api.deps import get_engine, require_admin_secret
from api.errors import InvalidRequestError, NotFoundError
from api.models.requests import (
    AdminConfirmClaimRequest,
    BuildEpochRequest,
    FailClaimRequest,
    PublishEpochRequest,
)
from api.models.responses import (
    BuildEpochResponse,
    ClaimResponse,
    EpochListResponse,
    EpochResponse,
    IncidentListResponse,
)
from core.engine import RewardEngine
from core.epochs.weeks import parse_week_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["epochs"])
admin_router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_secret)],
)


@router.get("/epochs", response_model=EpochListResponse)
def list_epochs(engine: RewardEngine = Depends(get_engine)) -> EpochListResponse:
    """Published epochs, oldest first."""
    rows = [row for row in engine.store.list_epochs() if row.set_on_chain]
    return EpochListResponse(epochs=[row.to_summary() for row in rows])


@router.get("/epochs/{epoch}", response_model=EpochResponse)
def get_epoch(
    epoch: int = Path(..., ge=1),
    engine: RewardEngine = Depends(get_engine),
) -> EpochResponse:
    row = engine.store.get_epoch(epoch)
    if row is None:
        raise NotFoundError(f"Epoch {epoch} not found", {"epoch_number": epoch})
    return EpochResponse(epoch=row.to_summary())


@admin_router.post("/epochs/build", response_model=BuildEpochResponse)
def build_epoch(
    body: BuildEpochRequest,
    engine: RewardEngine = Depends(get_engine),
) -> BuildEpochResponse:
    """
    Aggregate a period's events, resolve referral rewards and commit
    the epoch. Re-running with identical inputs is a no-op.
    """
    try:
        parse_week_key(body.week_key)
    except ValueError as e:
        raise InvalidRequestError(str(e), {"week_key": body.week_key})

    result = engine.build_week(
        body.week_key,
        body.events,
        edges=body.referral_edges,
        wallets=body.wallets,
        epoch_number=body.epoch_number,
        chain_latest=body.chain_latest,
        correction=body.correction,
    )
    return BuildEpochResponse(already_exists=result.already_exists, epoch=result.epoch)


@admin_router.get("/epochs/unpublished", response_model=EpochListResponse)
def list_unpublished(engine: RewardEngine = Depends(get_engine)) -> EpochListResponse:
    """Committed epochs whose root is not yet on-chain."""
    return EpochListResponse(epochs=engine.builder.list_unpublished())


@admin_router.post("/epochs/{epoch}/publish", response_model=EpochResponse)
def publish_epoch(
    body: PublishEpochRequest,
    epoch: int = Path(..., ge=1),
    engine: RewardEngine = Depends(get_engine),
) -> EpochResponse:
    summary = engine.builder.publish(epoch, observed_root_hex=body.observed_root_hex)
    return EpochResponse(epoch=summary)


@admin_router.post("/claims/{epoch}/confirm", response_model=ClaimResponse)
def confirm_claim(
    body: AdminConfirmClaimRequest,
    epoch: int = Path(..., ge=1),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimResponse:
    """Operator confirmation of a settlement the operator has checked."""
    logger.info("Operator confirming claim user=%s epoch=%d tx=%s", body.user_id, epoch, body.tx_sig)
    claim = engine.claims.confirm_claim(body.user_id, epoch, body.tx_sig, body.amount)
    return ClaimResponse(claim=claim)


@admin_router.post("/claims/{epoch}/fail", response_model=ClaimResponse)
def fail_claim(
    body: FailClaimRequest,
    epoch: int = Path(..., ge=1),
    engine: RewardEngine = Depends(get_engine),
) -> ClaimResponse:
    claim = engine.claims.fail_claim(body.user_id, epoch, body.reason)
    return ClaimResponse(claim=claim)


@admin_router.get("/incidents", response_model=IncidentListResponse)
def list_incidents(
    limit: int = Query(100, ge=1, le=1000),
    engine: RewardEngine = Depends(get_engine),
) -> IncidentListResponse:
    return IncidentListResponse(incidents=engine.claims.incidents(limit=limit))
