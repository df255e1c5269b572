"""
Common test fixtures shared by all modules.

Provides factory functions for core reward engine structures:
- RewardEvent
- base58 wallets
- a controllable clock and deterministic salt source
- well-formed settlement signatures and a scripted settlement verifier
- a RewardEngine wired over a given store

These are the foundational building blocks used by higher-level tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import base58

from core.config.runtime import RuntimeConfig
from core.crypto.hashing import bytes_to_wallet
from core.engine import RewardEngine
from core.merkle.leaf_encoding import LeafLayout
from core.schemas.rewards import RewardEvent
from core.settlement.verifier import SettlementOutcome, SettlementStatus
from core.storage.store import RewardStore


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 12, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# Inputs
# =============================================================================

def make_wallet(seed: int) -> str:
    """Deterministic base58 wallet address for a small integer seed."""
    return bytes_to_wallet(bytes([seed % 256]) * 32)


def make_event(
    user_id: str = "user-1",
    amount: int = 100,
    wallet: Optional[str] = None,
    source: str = "activity",
    ref_id: Optional[str] = None,
) -> RewardEvent:
    return RewardEvent(
        user_id=user_id,
        amount=amount,
        wallet=wallet,
        source=source,
        ref_id=ref_id,
    )


def make_tx_sig(seed: int = 1) -> str:
    """Deterministic base58 transaction signature (64 bytes)."""
    return base58.b58encode(bytes([seed % 255 + 1]) * 64).decode("ascii")


def counter_salts():
    """Salt source yielding 1, 2, 3... encoded big-endian at the layout's width."""
    state = {"n": 0}

    def _next(layout: LeafLayout) -> bytes:
        state["n"] += 1
        return state["n"].to_bytes(layout.salt_width, "big")

    return _next


# =============================================================================
# Settlement
# =============================================================================

class FakeSettlementVerifier:
    """Answers every check with a fixed outcome and records what was asked."""

    def __init__(self, outcome: SettlementOutcome = SettlementOutcome.CONFIRMED, error=None):
        self.outcome = outcome
        self.error = error
        self.checked: list[str] = []

    def check(self, tx_sig: str) -> SettlementStatus:
        self.checked.append(tx_sig)
        return SettlementStatus(tx_sig=tx_sig, outcome=self.outcome, error=self.error)


# =============================================================================
# Engine
# =============================================================================

def make_engine(
    store: RewardStore,
    clock: FakeClock,
    config: Optional[RuntimeConfig] = None,
) -> RewardEngine:
    """RewardEngine over ``store`` with deterministic salts."""
    engine = RewardEngine.from_config(config or RuntimeConfig(), store=store, clock=clock)
    engine.builder.salt_source = counter_salts()
    return engine


def build_and_publish(
    engine: RewardEngine,
    allocations: dict[str, int],
    week_key: str = "2026-W02",
) -> int:
    """Commit and publish an epoch with one event per user. Returns the epoch number."""
    events = [make_event(user_id, amount) for user_id, amount in allocations.items()]
    result = engine.build_week(week_key, events)
    engine.builder.publish(result.epoch.epoch_number)
    return result.epoch.epoch_number
