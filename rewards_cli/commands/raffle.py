"""
Module 09C - CLI Raffle Command

Usage:
    rewards odds --tickets 5 --total 100 [--pool 1000000] [--json]
    rewards odds --credits 5000 --total 100
"""

from __future__ import annotations

import json
from argparse import Namespace

from core.raffle.odds import RaffleOddsCalculator


EXIT_SUCCESS = 0


def odds_cmd(args: Namespace) -> int:
    raffle_cfg = args.cli_config.runtime.raffle
    calc = RaffleOddsCalculator(
        prize_count=raffle_cfg.prize_count,
        ticket_price=raffle_cfg.ticket_price,
        split_bps=raffle_cfg.split_bps,
    )
    tickets = args.tickets if args.tickets is not None else calc.tickets(args.credits or 0)
    odds = calc.odds(tickets, args.total, pool=args.pool)

    if args.json:
        print(json.dumps({
            "user_tickets": odds.user_tickets,
            "total_tickets": odds.total_tickets,
            "win_probability": odds.chance_pct,
            "win_probability_formatted": odds.chance_formatted,
            "prizes": odds.prizes,
        }, indent=2))
    else:
        print(f"{odds.user_tickets} of {odds.total_tickets} tickets: {odds.chance_formatted} chance of a prize")
        if args.pool:
            print("Prizes: " + ", ".join(str(p) for p in odds.prizes))
    return EXIT_SUCCESS
