"""
Module 03 - Storage Unit Tests
Tests for core/storage/store.py

1. Epoch insert is atomic and rejects a taken slot
2. Publication flag flips once
3. Claim compare-and-swap transitions
4. Large integer amounts survive a round trip
5. Timestamps come back timezone-aware
"""
from datetime import datetime, timedelta, timezone

import pytest

from core.schemas.errors import EpochAlreadyCommittedException
from core.schemas.rewards import ClaimStatus, IncidentKind
from core.storage.models import EpochRow, LeafRow
from core.storage.store import RewardStore


NOW = datetime(2026, 1, 12, 12, 0, tzinfo=timezone.utc)
U64_MAX = 2**64 - 1


def _epoch(number: int, week_key: str = "2026-W02", revision: int = 0, total: int = 100) -> EpochRow:
    return EpochRow(
        epoch_number=number,
        week_key=week_key,
        version=2,
        layout="canonical",
        revision=revision,
        root_hex="ab" * 32,
        leaf_count=1,
        total_amount=total,
        build_hash="cd" * 32,
        set_on_chain=False,
        created_at=NOW,
    )


def _leaf(number: int, user_id: str = "alice", index: int = 0, amount: int = 100) -> LeafRow:
    return LeafRow(
        epoch_number=number,
        leaf_index=index,
        user_id=user_id,
        subject_key=f"{index:02x}" * 32,
        wallet=None,
        amount=amount,
        salt="00" * 32,
        leaf_hash="ef" * 32,
        proof_json=[],
    )


class TestEpochs:

    def test_insert_and_read(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])
        row = store.get_epoch(1)
        assert row.week_key == "2026-W02"
        assert row.created_at == NOW
        assert row.created_at.tzinfo is not None
        assert store.latest_epoch_number() == 1
        assert [l.user_id for l in store.list_leaves(1)] == ["alice"]

    def test_empty_store(self, store):
        assert store.latest_epoch_number() is None
        assert store.get_epoch(1) is None
        assert store.list_epochs() == []

    def test_duplicate_epoch_number(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])
        with pytest.raises(EpochAlreadyCommittedException):
            store.insert_epoch(_epoch(1, week_key="2026-W03"), [_leaf(1)])

    def test_duplicate_period_revision(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])
        with pytest.raises(EpochAlreadyCommittedException):
            store.insert_epoch(_epoch(2), [_leaf(2)])
        assert store.get_epoch(2) is None

    def test_failed_leaf_insert_rolls_back_epoch(self, store):
        leaves = [_leaf(1, "alice", 0), _leaf(1, "bob", 0)]
        with pytest.raises(EpochAlreadyCommittedException):
            store.insert_epoch(_epoch(1), leaves)
        assert store.get_epoch(1) is None
        assert store.list_leaves(1) == []

    def test_find_period_returns_latest_revision(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])
        store.insert_epoch(_epoch(2, revision=1), [_leaf(2)])
        assert store.find_period_epoch("2026-W02", 2).epoch_number == 2
        assert store.find_period_epoch("2026-W02", 1) is None

    def test_mark_published_once(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])
        assert store.mark_published(1, NOW) is True
        assert store.mark_published(1, NOW) is False
        assert store.list_epochs(unpublished_only=True) == []

    def test_u64_amounts(self, store):
        store.insert_epoch(_epoch(1, total=U64_MAX * 3), [_leaf(1, amount=U64_MAX)])
        assert store.get_epoch(1).total_amount == U64_MAX * 3
        assert store.get_leaf(1, "alice").amount == U64_MAX


class TestClaims:

    @pytest.fixture(autouse=True)
    def _epoch_row(self, store):
        store.insert_epoch(_epoch(1), [_leaf(1)])

    def test_insert_once(self, store):
        assert store.insert_claim("alice", 1, 100, NOW) is True
        assert store.insert_claim("alice", 1, 100, NOW) is False
        assert store.get_claim("alice", 1).status == ClaimStatus.PENDING.value

    def test_seed_claims_skips_existing(self, store):
        store.insert_claim("alice", 1, 100, NOW)
        assert store.seed_claims(1, [("alice", 100), ("bob", 5)], NOW) == 1

    def test_transition_requires_expected_status(self, store):
        store.insert_claim("alice", 1, 100, NOW)
        assert store.transition_claim(
            "alice", 1, [ClaimStatus.PENDING], ClaimStatus.PROCESSING, NOW, started_at=NOW
        )
        assert not store.transition_claim(
            "alice", 1, [ClaimStatus.PENDING], ClaimStatus.PROCESSING, NOW, started_at=NOW
        )

    def test_revert_stale_only_old_processing(self, store):
        store.seed_claims(1, [("alice", 100), ("bob", 5), ("carol", 7)], NOW)
        old = NOW - timedelta(hours=1)
        store.transition_claim("alice", 1, [ClaimStatus.PENDING], ClaimStatus.PROCESSING, old, started_at=old)
        store.transition_claim("bob", 1, [ClaimStatus.PENDING], ClaimStatus.PROCESSING, NOW, started_at=NOW)

        assert store.revert_stale_claims(NOW - timedelta(minutes=30), NOW) == 1
        assert store.get_claim("alice", 1).status == ClaimStatus.PENDING.value
        assert store.get_claim("alice", 1).started_at == old
        assert store.get_claim("bob", 1).status == ClaimStatus.PROCESSING.value

    def test_list_claims_filters(self, store):
        store.seed_claims(1, [("alice", 100), ("bob", 5)], NOW)
        store.transition_claim("bob", 1, [ClaimStatus.PENDING], ClaimStatus.PROCESSING, NOW, started_at=NOW)
        assert [c.user_id for c in store.list_claims(user_id="alice")] == ["alice"]
        processing = store.list_claims(status=ClaimStatus.PROCESSING)
        assert [(c.user_id, c.week_key) for c in processing] == [("bob", "2026-W02")]

    def test_incidents_newest_first(self, store):
        store.add_incident("alice", 1, IncidentKind.AMOUNT_MISMATCH, NOW, details={"expected": "1"})
        store.add_incident("alice", 1, IncidentKind.LATE_SETTLEMENT, NOW, tx_sig="tx")
        kinds = [i.kind for i in store.list_incidents()]
        assert kinds == [IncidentKind.LATE_SETTLEMENT, IncidentKind.AMOUNT_MISMATCH]
        assert store.list_incidents(limit=1)[0].tx_sig == "tx"


class TestFileStore:

    def test_survives_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'rewards.db'}"
        first = RewardStore(url)
        first.create_all()
        first.insert_epoch(_epoch(1), [_leaf(1)])
        first.dispose()

        second = RewardStore(url)
        try:
            assert second.get_epoch(1).root_hex == "ab" * 32
        finally:
            second.dispose()
