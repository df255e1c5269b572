"""
Module 04 - Epochs
File: builder.py

Purpose: Turn raw per-user reward events for a period into a frozen,
indexed leaf set, commit its Merkle root, and publish it.

Build algorithm:
1. Aggregate events by subject, summing amounts (non-positive events and,
   for V1, events without a wallet are skipped with a warning)
2. Sort subjects by subject key (bytes ascending), user id as tiebreaker
3. Assign dense indices 0..n-1
4. V2: draw a random salt per leaf
5. Encode and hash every leaf, build the tree
6. Self-verify every proof against the new root
7. Insert epoch + leaf table in one transaction

A committed epoch is never mutated. Re-running a build with identical
inputs returns the existing epoch; a correction mints a new epoch number
and revision for the same period.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from core.crypto.hashing import hash_canonical, to_hex32, user_key, wallet_to_bytes
from core.merkle.leaf_encoding import (
    CANONICAL_LAYOUT,
    LeafLayout,
    generate_salt,
    hash_leaf,
)
from core.merkle.merkle_proofs import proof_to_json
from core.merkle.merkle_tree import MerkleTree, verify_merkle_path, verify_merkle_proof
from core.schemas.errors import (
    DuplicateSubjectException,
    EmptyEpochException,
    EpochAlreadyCommittedException,
    EpochNotFoundException,
    MerkleVerificationException,
    RootMismatchException,
)
from core.schemas.rewards import BuildResult, EpochSummary, RewardEvent
from core.schemas.versioning import (
    DEFAULT_LEAF_VERSION,
    LEAF_VERSION_V1,
    assert_supported_leaf_version,
)
from core.storage.models import EpochRow, LeafRow
from core.storage.store import RewardStore

from .weeks import parse_week_key, utc_now

logger = logging.getLogger(__name__)

SaltSource = Callable[[LeafLayout], bytes]


@dataclass(frozen=True)
class EpochEntry:
    """One aggregated allocation, before index assignment."""
    user_id: str
    subject_key: bytes
    amount: int
    wallet: Optional[str] = None


def compute_build_hash(
    epoch_number: int,
    week_key: str,
    version: int,
    entries: Sequence[EpochEntry],
) -> str:
    """
    Fingerprint of a build's inputs.

    keccak256 of canonical JSON over the epoch number, period, version and
    the (user_id, subject_key, amount) rows sorted by user id.
    """
    rows = sorted(
        ([e.user_id, e.subject_key.hex(), str(e.amount)] for e in entries),
        key=lambda r: r[0],
    )
    return to_hex32(
        hash_canonical(
            {
                "epoch": epoch_number,
                "week_key": week_key,
                "version": version,
                "rows": rows,
            }
        )
    )


class EpochBuilder:
    """
    Builds, commits and publishes reward epochs.

    Example:
        >>> builder = EpochBuilder(store, version=2)
        >>> result = builder.build("2026-W03", events)
        >>> builder.publish(result.epoch.epoch_number, observed_root_hex)
    """

    def __init__(
        self,
        store: RewardStore,
        version: int = DEFAULT_LEAF_VERSION,
        layout: LeafLayout = CANONICAL_LAYOUT,
        clock: Callable = utc_now,
        salt_source: SaltSource = generate_salt,
    ) -> None:
        assert_supported_leaf_version(version)
        self.store = store
        self.version = version
        self.layout = layout
        self.clock = clock
        self.salt_source = salt_source

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def subject_for(self, user_id: str, wallet: Optional[str]) -> bytes:
        if self.version == LEAF_VERSION_V1:
            return wallet_to_bytes(wallet or "")
        return user_key(user_id)

    def aggregate(self, events: Iterable[RewardEvent]) -> list[EpochEntry]:
        """
        Sum events per subject and return entries in index order.

        Raises:
            DuplicateSubjectException: If one subject maps to two users,
                or one user to two subjects
            InvalidFieldWidthException: If a wallet is malformed
        """
        totals: dict[bytes, int] = {}
        owners: dict[bytes, str] = {}
        wallets: dict[bytes, Optional[str]] = {}
        subjects_by_user: dict[str, bytes] = {}

        for event in events:
            if event.amount <= 0:
                logger.warning(
                    "Skipping non-positive reward event user=%s amount=%s ref=%s",
                    event.user_id, event.amount, event.ref_id,
                )
                continue
            if self.version == LEAF_VERSION_V1 and not event.wallet:
                logger.warning(
                    "Skipping reward event without wallet user=%s amount=%s",
                    event.user_id, event.amount,
                )
                continue

            subject = self.subject_for(event.user_id, event.wallet)
            owner = owners.setdefault(subject, event.user_id)
            if owner != event.user_id:
                raise DuplicateSubjectException(
                    subject.hex(), details={"users": sorted([owner, event.user_id])}
                )
            known = subjects_by_user.setdefault(event.user_id, subject)
            if known != subject:
                raise DuplicateSubjectException(
                    subject.hex(), details={"user_id": event.user_id}
                )
            totals[subject] = totals.get(subject, 0) + event.amount
            wallets.setdefault(subject, event.wallet)

        entries = [
            EpochEntry(
                user_id=owners[subject],
                subject_key=subject,
                amount=amount,
                wallet=wallets[subject],
            )
            for subject, amount in totals.items()
        ]
        return self.order_entries(entries)

    @staticmethod
    def order_entries(entries: Iterable[EpochEntry]) -> list[EpochEntry]:
        """Fix index assignment: subject key ascending, then user id."""
        return sorted(entries, key=lambda e: (e.subject_key, e.user_id))

    # ------------------------------------------------------------------
    # Epoch numbering
    # ------------------------------------------------------------------

    def next_epoch_number(self, chain_latest: Optional[int] = None) -> int:
        """max(latest in store, latest on chain) + 1; the first epoch is 1."""
        db_latest = self.store.latest_epoch_number() or 0
        return max(db_latest, chain_latest or 0) + 1

    # ------------------------------------------------------------------
    # Build & commit
    # ------------------------------------------------------------------

    def build(
        self,
        week_key: str,
        events: Iterable[RewardEvent],
        epoch_number: Optional[int] = None,
        chain_latest: Optional[int] = None,
        correction: bool = False,
    ) -> BuildResult:
        """
        Aggregate events for a period and commit the epoch.

        Raises:
            EmptyEpochException: If no eligible entries remain
            EpochAlreadyCommittedException: If the period (or epoch number)
                is already committed with different inputs
            InvalidFieldWidthException: If any leaf field overflows
        """
        parse_week_key(week_key)
        entries = self.aggregate(events)
        return self.commit_entries(
            week_key,
            entries,
            epoch_number=epoch_number,
            chain_latest=chain_latest,
            correction=correction,
        )

    def commit_entries(
        self,
        week_key: str,
        entries: Sequence[EpochEntry],
        epoch_number: Optional[int] = None,
        chain_latest: Optional[int] = None,
        correction: bool = False,
    ) -> BuildResult:
        """Commit already-aggregated entries (see build())."""
        if not entries:
            raise EmptyEpochException(week_key)
        self._check_unique(entries)
        ordered = self.order_entries(entries)

        existing = self.store.find_period_epoch(week_key, self.version)
        revision = 0
        if existing is not None:
            if not correction:
                return self._existing_or_conflict(existing, week_key, ordered, epoch_number)
            revision = existing.revision + 1

        if epoch_number is None:
            epoch_number = self.next_epoch_number(chain_latest)
        if self.store.get_epoch(epoch_number) is not None:
            raise EpochAlreadyCommittedException(
                f"Epoch number {epoch_number} is already committed",
                epoch_number=epoch_number,
            )

        epoch_row, leaf_rows = self._materialize(week_key, epoch_number, revision, ordered)
        try:
            self.store.insert_epoch(epoch_row, leaf_rows)
        except EpochAlreadyCommittedException:
            # Lost a race for the same slot; identical inputs are not a conflict
            winner = self.store.find_period_epoch(week_key, self.version)
            if winner is not None and winner.build_hash == compute_build_hash(
                winner.epoch_number, week_key, self.version, ordered
            ):
                return BuildResult(epoch=winner.to_summary(), already_exists=True)
            raise

        logger.info(
            "Committed epoch %d for %s (v%d/%s rev %d): %d leaves, total=%d, root=%s",
            epoch_number, week_key, self.version, self.layout.name, revision,
            epoch_row.leaf_count, epoch_row.total_amount, epoch_row.root_hex,
        )
        return BuildResult(epoch=epoch_row.to_summary(), already_exists=False)

    def _check_unique(self, entries: Sequence[EpochEntry]) -> None:
        seen_subjects: set[bytes] = set()
        seen_users: set[str] = set()
        for entry in entries:
            if entry.subject_key in seen_subjects or entry.user_id in seen_users:
                raise DuplicateSubjectException(
                    entry.subject_key.hex(), details={"user_id": entry.user_id}
                )
            seen_subjects.add(entry.subject_key)
            seen_users.add(entry.user_id)

    def _existing_or_conflict(
        self,
        existing: EpochRow,
        week_key: str,
        entries: Sequence[EpochEntry],
        epoch_number: Optional[int],
    ) -> BuildResult:
        same_number = epoch_number is None or epoch_number == existing.epoch_number
        build_hash = compute_build_hash(existing.epoch_number, week_key, self.version, entries)
        if same_number and build_hash == existing.build_hash:
            logger.info(
                "Epoch %d for %s already committed with identical inputs",
                existing.epoch_number, week_key,
            )
            return BuildResult(epoch=existing.to_summary(), already_exists=True)
        raise EpochAlreadyCommittedException(
            f"Period {week_key} is already committed as epoch {existing.epoch_number}; "
            f"use a correction to mint a new epoch",
            epoch_number=existing.epoch_number,
            details={"week_key": week_key, "revision": existing.revision},
        )

    def _materialize(
        self,
        week_key: str,
        epoch_number: int,
        revision: int,
        entries: Sequence[EpochEntry],
    ) -> tuple[EpochRow, list[LeafRow]]:
        salts: list[Optional[bytes]] = [
            None if self.version == LEAF_VERSION_V1 else self.salt_source(self.layout)
            for _ in entries
        ]
        leaves = [
            hash_leaf(
                self.version,
                entry.subject_key,
                epoch_number,
                entry.amount,
                index,
                salts[index],
                self.layout,
            )
            for index, entry in enumerate(entries)
        ]

        tree = MerkleTree(leaves)
        root = tree.root
        proofs = [tree.proof(i) for i in range(tree.leaf_count)]
        for proof in proofs:
            if not verify_merkle_proof(proof) or not verify_merkle_path(
                proof.leaf, proof.index, proof.siblings, root
            ):
                raise MerkleVerificationException(
                    "Self-check failed: proof does not fold to the new root",
                    leaf_index=proof.index,
                )

        now = self.clock()
        epoch_row = EpochRow(
            epoch_number=epoch_number,
            week_key=week_key,
            version=self.version,
            layout=self.layout.name,
            revision=revision,
            root_hex=to_hex32(root),
            leaf_count=len(entries),
            total_amount=sum(e.amount for e in entries),
            build_hash=compute_build_hash(epoch_number, week_key, self.version, entries),
            set_on_chain=False,
            created_at=now,
        )
        leaf_rows = [
            LeafRow(
                epoch_number=epoch_number,
                leaf_index=index,
                user_id=entry.user_id,
                subject_key=entry.subject_key.hex(),
                wallet=entry.wallet,
                amount=entry.amount,
                salt=salts[index].hex() if salts[index] is not None else None,
                leaf_hash=to_hex32(leaves[index]),
                proof_json=proof_to_json(proofs[index]),
            )
            for index, entry in enumerate(entries)
        ]
        return epoch_row, leaf_rows

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, epoch_number: int, observed_root_hex: Optional[str] = None) -> EpochSummary:
        """
        Record that the epoch root is live on-chain and open claims.

        ``observed_root_hex`` is the root read back from the verifying
        program; it must equal the committed root. Idempotent.

        Raises:
            EpochNotFoundException: If the epoch does not exist
            RootMismatchException: If the observed root differs
        """
        epoch = self.store.get_epoch(epoch_number)
        if epoch is None:
            raise EpochNotFoundException(epoch_number)

        if observed_root_hex is not None:
            observed = observed_root_hex.strip().lower()
            if observed.startswith("0x"):
                observed = observed[2:]
            if observed != epoch.root_hex:
                raise RootMismatchException(epoch_number, epoch.root_hex, observed_root_hex)

        now = self.clock()
        flipped = self.store.mark_published(epoch_number, now)
        leaves = self.store.list_leaves(epoch_number)
        seeded = self.store.seed_claims(
            epoch_number, [(leaf.user_id, leaf.amount) for leaf in leaves], now
        )
        if flipped:
            logger.info(
                "Published epoch %d root=%s; %d claims opened",
                epoch_number, epoch.root_hex, seeded,
            )
        return self.store.get_epoch(epoch_number).to_summary()

    def list_unpublished(self) -> list[EpochSummary]:
        return [row.to_summary() for row in self.store.list_epochs(unpublished_only=True)]
