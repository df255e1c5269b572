"""
Module 09D - API Request Models

Pydantic models for API request validation.
"""

from typing import Optional

from pydantic import BaseModel, Field

from core.schemas.rewards import ReferralEdge, RewardEvent


class BeginClaimRequest(BaseModel):
    """Request body for POST /claims/{epoch}/begin."""

    index: Optional[int] = Field(
        default=None,
        ge=0,
        description="Leaf index the client intends to claim (checked if given)",
    )
    proof: Optional[list[str]] = Field(
        default=None,
        description="Sibling hashes, hex, leaf to root (verified if given)",
    )


class ConfirmClaimRequest(BaseModel):
    """Request body for POST /claims/{epoch}/confirm."""

    tx_sig: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Settlement transaction signature",
    )
    amount: int = Field(
        ...,
        ge=0,
        description="Amount actually settled, smallest unit",
    )


class BuildEpochRequest(BaseModel):
    """Request body for POST /admin/epochs/build."""

    week_key: str = Field(..., description="ISO week key, e.g. 2026-W03")
    events: list[RewardEvent] = Field(default_factory=list)
    referral_edges: list[ReferralEdge] = Field(default_factory=list)
    wallets: dict[str, str] = Field(
        default_factory=dict,
        description="Claim wallet per user id, used for referral rewards",
    )
    epoch_number: Optional[int] = Field(default=None, ge=1)
    chain_latest: Optional[int] = Field(
        default=None,
        ge=0,
        description="Latest epoch number already present on-chain",
    )
    correction: bool = Field(
        default=False,
        description="Mint a new revision for an already committed period",
    )


class PublishEpochRequest(BaseModel):
    """Request body for POST /admin/epochs/{epoch}/publish."""

    observed_root_hex: Optional[str] = Field(
        default=None,
        description="Root read back from the claim program; must match",
    )


class AdminConfirmClaimRequest(ConfirmClaimRequest):
    """Request body for POST /admin/claims/{epoch}/confirm."""

    user_id: str = Field(..., min_length=1)


class FailClaimRequest(BaseModel):
    """Request body for POST /admin/claims/{epoch}/fail."""

    user_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=2000)
