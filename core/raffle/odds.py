"""
Module 07 - Raffle
File: odds.py

Purpose: Approximate win odds for the weekly raffle and its prize split.

The chance of winning at least one of ``prizes`` draws is approximated as

    p = 1 - (1 - t/T) ** prizes

which treats draws as independent. Exact without-replacement odds would
need a hypergeometric computation; user-facing copy is written against
this approximation, so it stays as is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

DEFAULT_PRIZE_COUNT = 3

# 50% / 30% / 20% of the pool, in basis points
DEFAULT_PRIZE_SPLIT_BPS: tuple[int, ...] = (5000, 3000, 2000)

# Credits are accounted in micro-units; one ticket costs 0.001 credits
DEFAULT_TICKET_PRICE = 1000


def chance_any_prize_pct(
    user_tickets: int,
    total_tickets: int,
    prizes: int = DEFAULT_PRIZE_COUNT,
) -> float:
    """
    Percent chance (0..100, 2 decimals) of winning at least one prize.

    Returns 0 when either ticket count is non-positive.

    Example:
        >>> chance_any_prize_pct(10, 10)
        100.0
    """
    return round(_chance_any_prize(user_tickets, total_tickets, prizes) * 100, 2)


def _chance_any_prize(user_tickets: int, total_tickets: int, prizes: int) -> float:
    if user_tickets <= 0 or total_tickets <= 0 or prizes <= 0:
        return 0.0
    share = min(user_tickets / total_tickets, 1.0)
    chance = 1.0 - (1.0 - share) ** prizes
    return min(max(chance, 0.0), 1.0)


def tickets_for_credits(credits_spent: int, ticket_price: int = DEFAULT_TICKET_PRICE) -> int:
    """Whole tickets bought with ``credits_spent`` micro-credits."""
    if ticket_price <= 0:
        raise ValueError(f"Ticket price must be positive, got {ticket_price}")
    if credits_spent <= 0:
        return 0
    return credits_spent // ticket_price


def prize_split(
    total_pool: int,
    split_bps: Sequence[int] = DEFAULT_PRIZE_SPLIT_BPS,
) -> list[int]:
    """
    Split a prize pool by basis points; rounding dust goes to first place.

    The returned amounts always sum to ``total_pool``.
    """
    if total_pool < 0:
        raise ValueError(f"Prize pool must be non-negative, got {total_pool}")
    if not split_bps or sum(split_bps) != 10_000:
        raise ValueError(f"Prize split must sum to 10000 bps, got {list(split_bps)}")
    amounts = [total_pool * bps // 10_000 for bps in split_bps]
    amounts[0] += total_pool - sum(amounts)
    return amounts


def format_probability(pct: float) -> str:
    """Display form of a percentage: '0%', '<0.01%', '0.53%', '12.3%', '100%'."""
    if pct <= 0:
        return "0%"
    if pct >= 100:
        return "100%"
    if pct < 0.01:
        return "<0.01%"
    if pct < 1:
        return f"{pct:.2f}%"
    return f"{pct:.1f}%"


@dataclass(frozen=True)
class RaffleOdds:
    user_tickets: int
    total_tickets: int
    chance_pct: float
    chance_formatted: str
    prizes: list[int] = field(default_factory=list)


class RaffleOddsCalculator:
    """
    Raffle odds with a fixed prize count and ticket price.

    Example:
        >>> calc = RaffleOddsCalculator()
        >>> calc.odds(user_tickets=5, total_tickets=100).chance_formatted
        '14.3%'
    """

    def __init__(
        self,
        prize_count: int = DEFAULT_PRIZE_COUNT,
        ticket_price: int = DEFAULT_TICKET_PRICE,
        split_bps: Sequence[int] = DEFAULT_PRIZE_SPLIT_BPS,
    ) -> None:
        if prize_count != len(split_bps):
            raise ValueError("Prize count must match the number of split entries")
        self.prize_count = prize_count
        self.ticket_price = ticket_price
        self.split_bps = tuple(split_bps)

    def tickets(self, credits_spent: int) -> int:
        return tickets_for_credits(credits_spent, self.ticket_price)

    def chance_pct(self, user_tickets: int, total_tickets: int) -> float:
        return chance_any_prize_pct(user_tickets, total_tickets, self.prize_count)

    def odds(self, user_tickets: int, total_tickets: int, pool: int = 0) -> RaffleOdds:
        raw_pct = _chance_any_prize(user_tickets, total_tickets, self.prize_count) * 100
        return RaffleOdds(
            user_tickets=max(user_tickets, 0),
            total_tickets=max(total_tickets, 0),
            chance_pct=round(raw_pct, 2),
            chance_formatted=format_probability(raw_pct),
            prizes=prize_split(pool, self.split_bps),
        )
