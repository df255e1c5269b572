"""
Module 01 - Schemas & Canonicalization
File: rewards.py

Purpose: Reward epoch, leaf, proof and claim schemas.
These models are the wire contract between the engine, the HTTP API,
the CLI and the inbound activity / referral collaborators.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .versioning import DEFAULT_LEAF_VERSION, LAYOUT_CANONICAL, LayoutName, LeafVersion

# Amounts are unsigned 64-bit integers in the smallest unit
U64_MAX: int = 2**64 - 1


class ClaimStatus(str, Enum):
    """Closed set of claim lifecycle states."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class IncidentKind(str, Enum):
    """Reconciliation incidents that need an operator."""

    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    LATE_SETTLEMENT = "LATE_SETTLEMENT"
    CONFIRMED_THEN_FAILED = "CONFIRMED_THEN_FAILED"


# =============================================================================
# Inbound collaborator inputs
# =============================================================================

class RewardEvent(BaseModel):
    """
    One raw reward event supplied by the activity ledger.

    Events are aggregated per subject by the EpochBuilder; amounts that are
    zero or negative are skipped there, not rejected here.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., min_length=1, description="Platform user id")
    amount: int = Field(..., description="Reward amount in the smallest unit")
    wallet: Optional[str] = Field(
        default=None,
        description="Claim wallet (base58 or hex); required for V1 leaves",
    )
    source: str = Field(
        default="activity",
        description="Origin of the event (e.g. 'activity', 'referral')",
    )
    ref_id: Optional[str] = Field(
        default=None,
        description="Stable id of the event for idempotent ingestion",
    )


class ReferralEdge(BaseModel):
    """Directed edge referee -> referrer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(..., min_length=1)
    referrer_id: str = Field(..., min_length=1)


class ReferralReward(BaseModel):
    """A secondary reward attributed to a referrer for an earner's activity."""

    model_config = ConfigDict(extra="forbid")

    ref_id: str = Field(..., description="'{week_key}:{earner}:L{level}'")
    week_key: str
    referrer_id: str
    earner_id: str
    level: int = Field(..., ge=1)
    bps: int = Field(..., ge=0, le=10_000)
    base_amount: int = Field(..., ge=0)
    amount: int = Field(..., ge=0)
    wallet: Optional[str] = None

    def to_event(self) -> RewardEvent:
        """Convert to a raw reward event for the epoch builder."""
        return RewardEvent(
            user_id=self.referrer_id,
            amount=self.amount,
            wallet=self.wallet,
            source="referral",
            ref_id=self.ref_id,
        )


# =============================================================================
# Epoch & leaf outputs
# =============================================================================

class EpochSummary(BaseModel):
    """Committed epoch as exposed to callers."""

    model_config = ConfigDict(extra="forbid")

    epoch_number: int = Field(..., ge=0)
    week_key: str
    version: LeafVersion = DEFAULT_LEAF_VERSION
    layout: LayoutName = LAYOUT_CANONICAL
    revision: int = Field(default=0, ge=0)
    root_hex: str = Field(..., min_length=64, max_length=64)
    leaf_count: int = Field(..., ge=1)
    total_amount: int = Field(..., ge=0)
    build_hash: str
    set_on_chain: bool = False
    created_at: datetime
    published_at: Optional[datetime] = None


class BuildResult(BaseModel):
    """Outcome of an epoch build request."""

    model_config = ConfigDict(extra="forbid")

    epoch: EpochSummary
    already_exists: bool = Field(
        default=False,
        description="True when an identical build for the period was already committed",
    )


class LeafRecord(BaseModel):
    """One frozen leaf of a committed epoch."""

    model_config = ConfigDict(extra="forbid")

    epoch_number: int
    index: int = Field(..., ge=0)
    user_id: str
    subject_key: str = Field(..., description="32-byte subject key, hex")
    wallet: Optional[str] = None
    amount: int = Field(..., ge=0, le=U64_MAX)
    salt: Optional[str] = Field(default=None, description="V2 salt, hex")
    leaf_hash: str


class ProofBundle(BaseModel):
    """
    Everything a client needs to submit a claim to the verifying program.

    ``proof`` is the ordered list of sibling hashes from leaf to root;
    ``directions`` says for each step whether the sibling sits on the left.
    """

    model_config = ConfigDict(extra="forbid")

    epoch_number: int
    week_key: str
    version: LeafVersion
    layout: LayoutName
    root_hex: str
    index: int
    amount: int
    subject_key: str
    salt: Optional[str] = None
    leaf_hash: str
    proof: list[str] = Field(default_factory=list)
    directions: list[bool] = Field(default_factory=list)


# =============================================================================
# Claim lifecycle
# =============================================================================

class ClaimRecord(BaseModel):
    """A user's claim of one epoch allocation."""

    model_config = ConfigDict(extra="forbid")

    user_id: str
    epoch_number: int
    week_key: Optional[str] = None
    amount: int = Field(..., ge=0)
    status: ClaimStatus
    started_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    tx_sig: Optional[str] = None
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ClaimStatus(v.upper())
        return v


class ClaimIncident(BaseModel):
    """Reconciliation incident recorded for manual review."""

    model_config = ConfigDict(extra="forbid")

    id: int
    user_id: str
    epoch_number: int
    kind: IncidentKind
    tx_sig: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


__all__ = [
    "U64_MAX",
    "ClaimStatus",
    "IncidentKind",
    "RewardEvent",
    "ReferralEdge",
    "ReferralReward",
    "EpochSummary",
    "BuildResult",
    "LeafRecord",
    "ProofBundle",
    "ClaimRecord",
    "ClaimIncident",
]
