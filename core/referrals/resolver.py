"""
Module 05 - Referrals
File: resolver.py

Purpose: Attribute multi-level referral rewards before an epoch is built.

Rules:
- Referral rewards derive only from an earner's base (non-referral)
  rewards for the period, so they never cascade.
- Level N pays ``tier_bps[N-1]`` basis points of the earner's base
  rewards to the N-th referrer up the chain.
- The walk never goes deeper than the number of tiers and stops at the
  first repeated user, whatever shape the edge data has.
- An optional budget scales every referral amount down proportionally.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence

from core.schemas.rewards import ReferralEdge, ReferralReward, RewardEvent

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000
SCALE_ONE = 1_000_000

# Single-level design: direct referrer earns 10%
DEFAULT_TIER_BPS: tuple[int, ...] = (1000,)


def mul_bps(amount: int, bps: int) -> int:
    """amount * bps / 10000, rounded down."""
    return amount * bps // BPS_DENOMINATOR


def base_earnings(events: Iterable[RewardEvent]) -> dict[str, int]:
    """Sum positive non-referral rewards per user."""
    totals: dict[str, int] = {}
    for event in events:
        if event.source == "referral" or event.amount <= 0:
            continue
        totals[event.user_id] = totals.get(event.user_id, 0) + event.amount
    return totals


class ReferralResolver:
    """
    Walks the referee -> referrer graph.

    Example:
        >>> resolver = ReferralResolver(edges, tier_bps=[1000, 300, 100])
        >>> rewards = resolver.resolve("2026-W03", base_earnings(events))
    """

    def __init__(
        self,
        edges: Iterable[ReferralEdge],
        tier_bps: Sequence[int] = DEFAULT_TIER_BPS,
        wallets: Optional[Mapping[str, str]] = None,
        require_wallet: bool = False,
    ) -> None:
        for bps in tier_bps:
            if bps < 0 or bps > BPS_DENOMINATOR:
                raise ValueError(f"Tier bps must be within 0..{BPS_DENOMINATOR}, got {bps}")
        self.tier_bps = tuple(tier_bps)
        self.wallets = dict(wallets or {})
        self.require_wallet = require_wallet
        self._referrer: dict[str, str] = {}

        for edge in edges:
            if edge.user_id == edge.referrer_id:
                logger.warning("Ignoring self-referral edge for %s", edge.user_id)
                continue
            current = self._referrer.setdefault(edge.user_id, edge.referrer_id)
            if current != edge.referrer_id:
                logger.warning(
                    "Ignoring second referrer %s for %s (keeping %s)",
                    edge.referrer_id, edge.user_id, current,
                )

    @property
    def max_depth(self) -> int:
        return len(self.tier_bps)

    def referrer_of(self, user_id: str) -> Optional[str]:
        return self._referrer.get(user_id)

    def chain(self, user_id: str) -> list[str]:
        """
        Referrers of ``user_id``, nearest first.

        Bounded by the tier count; stops at the first repeated user.
        """
        result: list[str] = []
        seen = {user_id}
        current = user_id
        while len(result) < self.max_depth:
            parent = self._referrer.get(current)
            if parent is None:
                break
            if parent in seen:
                logger.warning(
                    "Referral cycle detected above %s at %s; chain truncated",
                    user_id, parent,
                )
                break
            result.append(parent)
            seen.add(parent)
            current = parent
        return result

    def resolve(
        self,
        week_key: str,
        earnings: Mapping[str, int],
        budget: Optional[int] = None,
    ) -> list[ReferralReward]:
        """
        Compute referral rewards for a period.

        Args:
            week_key: Period the rewards belong to
            earnings: Base (non-referral) rewards per earner
            budget: Optional cap on the total referral payout

        Returns:
            Referral rewards ordered by earner, then level
        """
        owed: list[ReferralReward] = []
        for earner_id in sorted(earnings):
            earned = earnings[earner_id]
            if earned <= 0:
                continue
            for level, referrer_id in enumerate(self.chain(earner_id), start=1):
                bps = self.tier_bps[level - 1]
                amount = mul_bps(earned, bps)
                if amount <= 0:
                    continue
                wallet = self.wallets.get(referrer_id)
                if self.require_wallet and not wallet:
                    logger.warning(
                        "Skipping L%d referral reward for %s (earner %s): no claim wallet on file",
                        level, referrer_id, earner_id,
                    )
                    continue
                owed.append(
                    ReferralReward(
                        ref_id=f"{week_key}:{earner_id}:L{level}",
                        week_key=week_key,
                        referrer_id=referrer_id,
                        earner_id=earner_id,
                        level=level,
                        bps=bps,
                        base_amount=earned,
                        amount=amount,
                        wallet=wallet,
                    )
                )

        if budget is None:
            return owed
        return self.apply_budget(owed, budget)

    @staticmethod
    def apply_budget(rewards: Sequence[ReferralReward], budget: int) -> list[ReferralReward]:
        """Scale rewards down (1e6 fixed-point) when they exceed the budget."""
        total = sum(r.amount for r in rewards)
        if total <= budget:
            return list(rewards)
        scale = max(budget, 0) * SCALE_ONE // total
        logger.info(
            "Referral rewards %d exceed budget %d; scaling to %.2f%%",
            total, budget, scale / (SCALE_ONE / 100),
        )
        scaled: list[ReferralReward] = []
        for reward in rewards:
            amount = reward.amount * scale // SCALE_ONE
            if amount <= 0:
                continue
            scaled.append(reward.model_copy(update={"amount": amount}))
        return scaled
