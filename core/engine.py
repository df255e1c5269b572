"""
Reward Engine

Wires the store, epoch builder, claim state machine, referral resolver
and raffle calculator from one RuntimeConfig. The API and the CLI both
build their components through here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Mapping, Optional

from core.claims.state_machine import ClaimStateMachine
from core.config.runtime import RuntimeConfig
from core.epochs.builder import EpochBuilder
from core.epochs.weeks import utc_now
from core.merkle.leaf_encoding import get_layout
from core.raffle.odds import RaffleOddsCalculator
from core.referrals.resolver import BPS_DENOMINATOR, ReferralResolver, base_earnings
from core.schemas.rewards import BuildResult, ReferralEdge, RewardEvent
from core.settlement.verifier import SolanaSettlementVerifier
from core.storage.store import RewardStore

logger = logging.getLogger(__name__)


@dataclass
class RewardEngine:
    """All engine components sharing one store and clock."""
    config: RuntimeConfig
    store: RewardStore
    builder: EpochBuilder
    claims: ClaimStateMachine
    raffle: RaffleOddsCalculator

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        store: Optional[RewardStore] = None,
        clock: Callable = utc_now,
    ) -> "RewardEngine":
        if store is None:
            store = RewardStore(config.storage.url, echo=config.storage.echo)
            store.create_all()

        settlement = None
        if config.settlement.rpc_url:
            settlement = SolanaSettlementVerifier(
                config.settlement.rpc_url,
                commitment=config.settlement.commitment,
                timeout=config.settlement.timeout,
                program_id=config.settlement.program_id,
            )

        return cls(
            config=config,
            store=store,
            builder=EpochBuilder(
                store,
                version=config.epochs.leaf_version,
                layout=get_layout(config.epochs.layout),
                clock=clock,
            ),
            claims=ClaimStateMachine(
                store,
                stale_after=timedelta(minutes=config.claims.stale_after_minutes),
                clock=clock,
                settlement=settlement,
            ),
            raffle=RaffleOddsCalculator(
                prize_count=config.raffle.prize_count,
                ticket_price=config.raffle.ticket_price,
                split_bps=config.raffle.split_bps,
            ),
        )

    def referral_resolver(
        self,
        edges: Iterable[ReferralEdge],
        wallets: Optional[Mapping[str, str]] = None,
    ) -> ReferralResolver:
        return ReferralResolver(
            edges,
            tier_bps=self.config.referrals.tier_bps,
            wallets=wallets,
            require_wallet=self.config.referrals.require_wallet,
        )

    def build_week(
        self,
        week_key: str,
        events: Iterable[RewardEvent],
        edges: Iterable[ReferralEdge] = (),
        wallets: Optional[Mapping[str, str]] = None,
        epoch_number: Optional[int] = None,
        chain_latest: Optional[int] = None,
        correction: bool = False,
    ) -> BuildResult:
        """
        Resolve referral rewards from base earnings, then build the epoch.

        Referral events already present in ``events`` are kept as given;
        new ones are derived only from non-referral events.
        """
        events = list(events)
        earnings = base_earnings(events)
        budget = None
        if self.config.referrals.budget_bps is not None:
            budget = sum(earnings.values()) * self.config.referrals.budget_bps // BPS_DENOMINATOR

        resolver = self.referral_resolver(edges, wallets)
        referral_rewards = resolver.resolve(week_key, earnings, budget=budget)
        if referral_rewards:
            logger.info(
                "Resolved %d referral rewards for %s (total=%d)",
                len(referral_rewards), week_key, sum(r.amount for r in referral_rewards),
            )
        all_events = events + [r.to_event() for r in referral_rewards]
        return self.builder.build(
            week_key,
            all_events,
            epoch_number=epoch_number,
            chain_latest=chain_latest,
            correction=correction,
        )
