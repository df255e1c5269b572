"""
Module 03 - Storage
File: store.py

Purpose: Persistent epoch/claim store shared by request handlers and the
stale-claim sweep.

Every mutation is one short transaction whose first statement is the
write itself. Claim state changes are compare-and-swap updates
(``UPDATE ... WHERE status IN (expected)``) and report success through
the affected row count, so a concurrent sweep and a user request can
never both win.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional, Sequence

from sqlalchemy import and_, create_engine, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.schemas.errors import EpochAlreadyCommittedException
from core.schemas.rewards import ClaimIncident, ClaimRecord, ClaimStatus, IncidentKind

from .models import Base, ClaimRow, EpochRow, IncidentRow, LeafRow

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {"pool_pre_ping": True}


class RewardStore:
    """
    Repository over the reward tables.

    Example:
        >>> store = RewardStore("sqlite:///rewards.db")
        >>> store.create_all()
        >>> store.latest_epoch_number()
    """

    def __init__(
        self,
        url: str = "sqlite:///rewards.db",
        echo: bool = False,
        engine: Optional[Engine] = None,
    ) -> None:
        self.url = url
        self.engine = engine or create_engine(url, echo=echo, **_engine_kwargs(url))
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def in_memory(cls) -> "RewardStore":
        """Single-connection in-memory store; schema created."""
        store = cls("sqlite://")
        store.create_all()
        return store

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session wrapped in one transaction; commits on success, rolls back on error."""
        with self._session_factory() as session:
            with session.begin():
                yield session

    # ------------------------------------------------------------------
    # Epochs
    # ------------------------------------------------------------------

    def latest_epoch_number(self) -> Optional[int]:
        with self.session() as s:
            return s.scalar(select(func.max(EpochRow.epoch_number)))

    def get_epoch(self, epoch_number: int) -> Optional[EpochRow]:
        with self.session() as s:
            return s.get(EpochRow, epoch_number)

    def find_period_epoch(self, week_key: str, version: int) -> Optional[EpochRow]:
        """Latest revision committed for a period, if any."""
        with self.session() as s:
            return s.scalar(
                select(EpochRow)
                .where(EpochRow.week_key == week_key, EpochRow.version == version)
                .order_by(EpochRow.revision.desc())
                .limit(1)
            )

    def list_epochs(self, unpublished_only: bool = False) -> list[EpochRow]:
        stmt = select(EpochRow).order_by(EpochRow.epoch_number)
        if unpublished_only:
            stmt = stmt.where(EpochRow.set_on_chain.is_(False))
        with self.session() as s:
            return list(s.scalars(stmt))

    def insert_epoch(self, epoch: EpochRow, leaves: Sequence[LeafRow]) -> None:
        """
        Commit an epoch and its full leaf table atomically.

        Raises:
            EpochAlreadyCommittedException: If the epoch number or the
                (week_key, version, revision) slot is already taken
        """
        try:
            with self.session() as s:
                s.add(epoch)
                s.flush()
                s.add_all(leaves)
        except IntegrityError as e:
            raise EpochAlreadyCommittedException(
                f"Epoch {epoch.epoch_number} ({epoch.week_key} rev {epoch.revision}) "
                f"is already committed",
                epoch_number=epoch.epoch_number,
                details={"week_key": epoch.week_key, "revision": epoch.revision},
            ) from e

    def mark_published(self, epoch_number: int, now: datetime) -> bool:
        """Conditional update set_on_chain False -> True. True if this call flipped it."""
        with self.session() as s:
            result = s.execute(
                update(EpochRow)
                .where(
                    EpochRow.epoch_number == epoch_number,
                    EpochRow.set_on_chain.is_(False),
                )
                .values(set_on_chain=True, published_at=now)
            )
            return result.rowcount == 1

    def get_leaf(self, epoch_number: int, user_id: str) -> Optional[LeafRow]:
        with self.session() as s:
            return s.scalar(
                select(LeafRow).where(
                    LeafRow.epoch_number == epoch_number,
                    LeafRow.user_id == user_id,
                )
            )

    def list_leaves(self, epoch_number: int) -> list[LeafRow]:
        with self.session() as s:
            return list(
                s.scalars(
                    select(LeafRow)
                    .where(LeafRow.epoch_number == epoch_number)
                    .order_by(LeafRow.leaf_index)
                )
            )

    def list_user_leaves(
        self,
        user_id: str,
        published_only: bool = False,
    ) -> list[tuple[EpochRow, LeafRow, Optional[str]]]:
        """
        Every leaf of one user with its epoch and claim status (None if no
        claim row exists yet), oldest epoch first.
        """
        stmt = (
            select(EpochRow, LeafRow, ClaimRow.status)
            .join(LeafRow, LeafRow.epoch_number == EpochRow.epoch_number)
            .outerjoin(
                ClaimRow,
                and_(
                    ClaimRow.epoch_number == LeafRow.epoch_number,
                    ClaimRow.user_id == LeafRow.user_id,
                ),
            )
            .where(LeafRow.user_id == user_id)
            .order_by(EpochRow.epoch_number)
        )
        if published_only:
            stmt = stmt.where(EpochRow.set_on_chain.is_(True))
        with self.session() as s:
            return [(epoch, leaf, status) for epoch, leaf, status in s.execute(stmt)]

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def insert_claim(
        self,
        user_id: str,
        epoch_number: int,
        amount: int,
        now: datetime,
    ) -> bool:
        """Create a PENDING claim. Returns False if one already exists."""
        try:
            with self.session() as s:
                s.add(
                    ClaimRow(
                        user_id=user_id,
                        epoch_number=epoch_number,
                        amount=amount,
                        status=ClaimStatus.PENDING.value,
                        created_at=now,
                        updated_at=now,
                    )
                )
            return True
        except IntegrityError:
            return False

    def seed_claims(
        self,
        epoch_number: int,
        allocations: Iterable[tuple[str, int]],
        now: datetime,
    ) -> int:
        """Create PENDING claims for every allocation that has none yet."""
        created = 0
        for user_id, amount in allocations:
            if self.insert_claim(user_id, epoch_number, amount, now):
                created += 1
        return created

    def get_claim(self, user_id: str, epoch_number: int) -> Optional[ClaimRow]:
        with self.session() as s:
            return s.scalar(
                select(ClaimRow).where(
                    ClaimRow.user_id == user_id,
                    ClaimRow.epoch_number == epoch_number,
                )
            )

    def get_claim_by_tx_sig(self, tx_sig: str) -> Optional[ClaimRow]:
        with self.session() as s:
            return s.scalar(select(ClaimRow).where(ClaimRow.tx_sig == tx_sig))

    def transition_claim(
        self,
        user_id: str,
        epoch_number: int,
        from_statuses: Sequence[ClaimStatus],
        to_status: ClaimStatus,
        now: datetime,
        **values: Any,
    ) -> bool:
        """
        Compare-and-swap a claim's status.

        The update only applies while the row is still in one of
        ``from_statuses``. Returns True if exactly this call changed it.

        Raises:
            IntegrityError: If ``values`` violate a unique constraint (tx_sig)
        """
        with self.session() as s:
            result = s.execute(
                update(ClaimRow)
                .where(
                    ClaimRow.user_id == user_id,
                    ClaimRow.epoch_number == epoch_number,
                    ClaimRow.status.in_([st.value for st in from_statuses]),
                )
                .values(status=to_status.value, updated_at=now, **values)
            )
            return result.rowcount == 1

    def revert_stale_claims(self, threshold: datetime, now: datetime) -> int:
        """
        PROCESSING claims started before ``threshold`` go back to PENDING.

        ``started_at`` is kept, marking the claim as once in flight.
        A single conditional update: a claim that already left PROCESSING
        is never touched, so overlapping sweeps revert each claim once.
        """
        with self.session() as s:
            result = s.execute(
                update(ClaimRow)
                .where(
                    ClaimRow.status == ClaimStatus.PROCESSING.value,
                    ClaimRow.started_at < threshold,
                )
                .values(status=ClaimStatus.PENDING.value, updated_at=now)
            )
            return result.rowcount

    def list_claims(
        self,
        user_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ClaimRecord]:
        """Claims joined with their epoch's week key, newest epoch first."""
        stmt = (
            select(ClaimRow, EpochRow.week_key)
            .join(EpochRow, EpochRow.epoch_number == ClaimRow.epoch_number)
            .order_by(ClaimRow.epoch_number.desc(), ClaimRow.id.desc())
        )
        if user_id is not None:
            stmt = stmt.where(ClaimRow.user_id == user_id)
        if status is not None:
            stmt = stmt.where(ClaimRow.status == status.value)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.session() as s:
            return [row.to_record(week_key) for row, week_key in s.execute(stmt)]

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    def add_incident(
        self,
        user_id: str,
        epoch_number: int,
        kind: IncidentKind,
        now: datetime,
        tx_sig: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> int:
        with self.session() as s:
            row = IncidentRow(
                user_id=user_id,
                epoch_number=epoch_number,
                kind=kind.value,
                tx_sig=tx_sig,
                details=details or {},
                created_at=now,
            )
            s.add(row)
            s.flush()
            return row.id

    def list_incidents(self, limit: int = 100) -> list[ClaimIncident]:
        with self.session() as s:
            rows = s.scalars(
                select(IncidentRow).order_by(IncidentRow.id.desc()).limit(limit)
            )
            return [row.to_record() for row in rows]
