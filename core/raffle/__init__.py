"""
Module 07 - Raffle
Approximate raffle odds and prize split.
"""
from .odds import (
    DEFAULT_PRIZE_COUNT,
    DEFAULT_PRIZE_SPLIT_BPS,
    DEFAULT_TICKET_PRICE,
    RaffleOdds,
    RaffleOddsCalculator,
    chance_any_prize_pct,
    format_probability,
    prize_split,
    tickets_for_credits,
)

__all__ = [
    "DEFAULT_PRIZE_COUNT",
    "DEFAULT_PRIZE_SPLIT_BPS",
    "DEFAULT_TICKET_PRICE",
    "RaffleOdds",
    "RaffleOddsCalculator",
    "chance_any_prize_pct",
    "format_probability",
    "prize_split",
    "tickets_for_credits",
]
