"""
Module 05 - Referral Resolver Unit Tests
Tests for core/referrals/resolver.py

1. Single and multi-level attribution with floor rounding
2. Depth bound and cycle safety
3. No cascading: referral rewards never earn referral rewards
4. Budget scaling
"""
import logging

import pytest

from core.referrals.resolver import (
    ReferralResolver,
    base_earnings,
    mul_bps,
)
from core.schemas.rewards import ReferralEdge, RewardEvent


def _edges(*pairs):
    return [ReferralEdge(user_id=u, referrer_id=r) for u, r in pairs]


class TestBaseEarnings:

    def test_sums_per_user(self):
        events = [
            RewardEvent(user_id="a", amount=100),
            RewardEvent(user_id="a", amount=50),
            RewardEvent(user_id="b", amount=10),
        ]
        assert base_earnings(events) == {"a": 150, "b": 10}

    def test_referral_and_non_positive_skipped(self):
        events = [
            RewardEvent(user_id="a", amount=100, source="referral"),
            RewardEvent(user_id="a", amount=0),
            RewardEvent(user_id="b", amount=-5),
        ]
        assert base_earnings(events) == {}


class TestResolve:

    def test_single_level_default(self):
        resolver = ReferralResolver(_edges(("earner", "ref")))
        rewards = resolver.resolve("2026-W03", {"earner": 1000})
        assert len(rewards) == 1
        reward = rewards[0]
        assert reward.referrer_id == "ref"
        assert reward.amount == 100
        assert reward.level == 1
        assert reward.ref_id == "2026-W03:earner:L1"

    def test_multi_level(self):
        resolver = ReferralResolver(
            _edges(("c", "b"), ("b", "a")),
            tier_bps=[1000, 500],
        )
        rewards = resolver.resolve("2026-W03", {"c": 1000})
        assert [(r.referrer_id, r.level, r.amount) for r in rewards] == [
            ("b", 1, 100),
            ("a", 2, 50),
        ]

    def test_floor_rounding(self):
        assert mul_bps(99, 1000) == 9
        resolver = ReferralResolver(_edges(("e", "r")))
        assert resolver.resolve("2026-W03", {"e": 9}) == []

    def test_depth_bound(self):
        resolver = ReferralResolver(
            _edges(("d", "c"), ("c", "b"), ("b", "a")),
            tier_bps=[1000, 500],
        )
        assert resolver.chain("d") == ["c", "b"]

    def test_cycle_terminates(self, caplog):
        resolver = ReferralResolver(
            _edges(("a", "b"), ("b", "c"), ("c", "a")),
            tier_bps=[1000, 500, 250, 100],
        )
        with caplog.at_level(logging.WARNING):
            assert resolver.chain("a") == ["b", "c"]
        assert "cycle" in caplog.text

    def test_self_referral_ignored(self):
        resolver = ReferralResolver(_edges(("a", "a")))
        assert resolver.referrer_of("a") is None

    def test_first_referrer_kept(self):
        resolver = ReferralResolver(_edges(("a", "x"), ("a", "y")))
        assert resolver.referrer_of("a") == "x"

    def test_ordered_by_earner(self):
        resolver = ReferralResolver(_edges(("z", "r"), ("m", "r")))
        rewards = resolver.resolve("2026-W03", {"z": 100, "m": 100})
        assert [r.earner_id for r in rewards] == ["m", "z"]

    def test_require_wallet_skips(self):
        resolver = ReferralResolver(
            _edges(("e", "r1"), ("f", "r2")),
            wallets={"r1": "1" * 32},
            require_wallet=True,
        )
        rewards = resolver.resolve("2026-W03", {"e": 1000, "f": 1000})
        assert [r.referrer_id for r in rewards] == ["r1"]
        assert rewards[0].wallet == "1" * 32

    def test_to_event_is_referral_source(self):
        resolver = ReferralResolver(_edges(("e", "r")))
        event = resolver.resolve("2026-W03", {"e": 1000})[0].to_event()
        assert event.source == "referral"
        assert event.user_id == "r"
        assert event.amount == 100

    def test_invalid_bps(self):
        with pytest.raises(ValueError):
            ReferralResolver([], tier_bps=[10_001])


class TestBudget:

    def test_under_budget_unchanged(self):
        resolver = ReferralResolver(_edges(("e", "r")))
        rewards = resolver.resolve("2026-W03", {"e": 1000}, budget=500)
        assert rewards[0].amount == 100

    def test_scaled_down(self):
        resolver = ReferralResolver(_edges(("e", "r"), ("f", "s")))
        rewards = resolver.resolve("2026-W03", {"e": 1000, "f": 3000}, budget=200)
        # total 400 scaled by 0.5
        assert [r.amount for r in rewards] == [50, 150]
        assert sum(r.amount for r in rewards) <= 200

    def test_zero_budget_drops_everything(self):
        resolver = ReferralResolver(_edges(("e", "r")))
        assert resolver.resolve("2026-W03", {"e": 1000}, budget=0) == []
