"""
Module 09D - Scheduler Routes

Endpoints hit by the external scheduler. Authenticated with the cron
secret in the X-Cron-Secret header.
"""

from fastapi import APIRouter, Depends

from api.deps import get_engine, require_cron_secret
from api.models.responses import SweepResponse
from core.engine import RewardEngine
from core.schemas.canonical import format_datetime_canonical


router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)


@router.post("/claims/revert-stale", response_model=SweepResponse)
def revert_stale_claims(engine: RewardEngine = Depends(get_engine)) -> SweepResponse:
    """Revert claims stuck in PROCESSING back to PENDING."""
    threshold = engine.claims.clock() - engine.claims.stale_after
    reverted = engine.claims.sweep_stale()
    return SweepResponse(
        reverted_count=reverted,
        stale_threshold=format_datetime_canonical(threshold),
    )
