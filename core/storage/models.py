"""
Module 03 - Storage
File: models.py

Purpose: SQLAlchemy ORM tables for epochs, frozen leaves, claims and
reconciliation incidents.

Uniqueness rules are enforced by the database, not by read-then-write:
- one epoch per (week_key, version, revision)
- one leaf per (epoch, index), (epoch, subject_key) and (epoch, user_id)
- one claim per (user_id, epoch); a settlement tx_sig is used at most once
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from core.schemas.rewards import (
    ClaimIncident,
    ClaimRecord,
    ClaimStatus,
    EpochSummary,
    IncidentKind,
    LeafRecord,
)


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, always returns timezone-aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class IntString(TypeDecorator):
    """
    Arbitrary-size non-negative integer stored as a decimal string.

    SQLite integers are signed 64-bit, so u64 amounts and epoch totals
    cannot be stored natively.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect: Any) -> Optional[str]:
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[int]:
        if value is None:
            return None
        return int(value)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Epochs
# ---------------------------------------------------------------------------


class EpochRow(Base):
    """One committed reward period."""

    __tablename__ = "reward_epochs"
    __table_args__ = (
        UniqueConstraint("week_key", "version", "revision", name="uq_epoch_period_revision"),
    )

    epoch_number: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    week_key: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    layout: Mapped[str] = mapped_column(String(16), nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    root_hex: Mapped[str] = mapped_column(String(64), nullable=False)
    leaf_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[int] = mapped_column(IntString, nullable=False)
    build_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    set_on_chain: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    def to_summary(self) -> EpochSummary:
        return EpochSummary(
            epoch_number=self.epoch_number,
            week_key=self.week_key,
            version=self.version,
            layout=self.layout,
            revision=self.revision,
            root_hex=self.root_hex,
            leaf_count=self.leaf_count,
            total_amount=self.total_amount,
            build_hash=self.build_hash,
            set_on_chain=self.set_on_chain,
            created_at=self.created_at,
            published_at=self.published_at,
        )


class LeafRow(Base):
    """A frozen leaf. Rows are only ever inserted together with their epoch."""

    __tablename__ = "reward_epoch_leaves"
    __table_args__ = (
        UniqueConstraint("epoch_number", "leaf_index", name="uq_leaf_epoch_index"),
        UniqueConstraint("epoch_number", "subject_key", name="uq_leaf_epoch_subject"),
        UniqueConstraint("epoch_number", "user_id", name="uq_leaf_epoch_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    epoch_number: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reward_epochs.epoch_number"), nullable=False
    )
    leaf_index: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    subject_key: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    amount: Mapped[int] = mapped_column(IntString, nullable=False)
    salt: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    leaf_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    proof_json: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    def to_record(self) -> LeafRecord:
        return LeafRecord(
            epoch_number=self.epoch_number,
            index=self.leaf_index,
            user_id=self.user_id,
            subject_key=self.subject_key,
            wallet=self.wallet,
            amount=self.amount,
            salt=self.salt,
            leaf_hash=self.leaf_hash,
        )


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


class ClaimRow(Base):
    """A user's claim of one epoch allocation. Mutated only by conditional updates."""

    __tablename__ = "reward_claims"
    __table_args__ = (
        UniqueConstraint("user_id", "epoch_number", name="uq_claim_user_epoch"),
        Index("ix_claims_status_started", "status", "started_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    epoch_number: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reward_epochs.epoch_number"), nullable=False
    )
    amount: Mapped[int] = mapped_column(IntString, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ClaimStatus.PENDING.value
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    tx_sig: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, unique=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def to_record(self, week_key: Optional[str] = None) -> ClaimRecord:
        return ClaimRecord(
            user_id=self.user_id,
            epoch_number=self.epoch_number,
            week_key=week_key,
            amount=self.amount,
            status=self.status,
            started_at=self.started_at,
            confirmed_at=self.confirmed_at,
            tx_sig=self.tx_sig,
            error=self.error,
        )


class IncidentRow(Base):
    """Reconciliation incident awaiting manual review."""

    __tablename__ = "claim_incidents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    epoch_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    tx_sig: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def to_record(self) -> ClaimIncident:
        return ClaimIncident(
            id=self.id,
            user_id=self.user_id,
            epoch_number=self.epoch_number,
            kind=IncidentKind(self.kind),
            tx_sig=self.tx_sig,
            details=self.details or {},
            created_at=self.created_at,
        )
