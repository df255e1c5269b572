"""
Module 09D - Raffle Routes

Displayed win probability for the weekly raffle.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_engine
from api.models.responses import RaffleOddsResponse
from core.engine import RewardEngine


router = APIRouter(prefix="/raffle", tags=["raffle"])


@router.get("/odds", response_model=RaffleOddsResponse)
def raffle_odds(
    total_tickets: int = Query(..., ge=0),
    user_tickets: Optional[int] = Query(None, ge=0),
    credits_spent: Optional[int] = Query(None, ge=0),
    pool: int = Query(0, ge=0),
    engine: RewardEngine = Depends(get_engine),
) -> RaffleOddsResponse:
    """
    Chance of winning at least one prize.

    Pass either ``user_tickets`` directly or ``credits_spent`` to derive
    them from the ticket price.
    """
    if user_tickets is None:
        user_tickets = engine.raffle.tickets(credits_spent or 0)
    odds = engine.raffle.odds(user_tickets, total_tickets, pool=pool)
    return RaffleOddsResponse(
        user_tickets=odds.user_tickets,
        total_tickets=odds.total_tickets,
        win_probability=odds.chance_pct,
        win_probability_formatted=odds.chance_formatted,
        prizes=odds.prizes,
    )
