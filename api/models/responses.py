"""
Module 09D - API Response Models

Pydantic models for API response serialization.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from core.schemas.rewards import ClaimIncident, ClaimRecord, EpochSummary, ProofBundle


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "epoch-rewards-api"
    version: str = "v1"


class ProofResponse(BaseModel):
    """Response for GET /claims/{epoch}/proof."""

    ok: bool = True
    proof: ProofBundle


class ClaimableListResponse(BaseModel):
    """Response for GET /claims/claimable."""

    ok: bool = True
    claimables: list[ProofBundle] = Field(default_factory=list)
    total_amount: int = Field(default=0, ge=0)


class ClaimResponse(BaseModel):
    """Response for claim state transitions."""

    ok: bool = True
    claim: ClaimRecord


class ClaimListResponse(BaseModel):
    ok: bool = True
    claims: list[ClaimRecord] = Field(default_factory=list)


class EpochResponse(BaseModel):
    ok: bool = True
    epoch: EpochSummary


class BuildEpochResponse(BaseModel):
    """Response for POST /admin/epochs/build."""

    ok: bool = True
    already_exists: bool = Field(
        default=False,
        description="True when identical inputs were already committed",
    )
    epoch: EpochSummary


class EpochListResponse(BaseModel):
    ok: bool = True
    epochs: list[EpochSummary] = Field(default_factory=list)


class IncidentListResponse(BaseModel):
    ok: bool = True
    incidents: list[ClaimIncident] = Field(default_factory=list)


class SweepResponse(BaseModel):
    """Response for POST /cron/claims/revert-stale."""

    ok: bool = True
    reverted_count: int = Field(..., ge=0)
    stale_threshold: str = Field(..., description="Claims started before this were reverted")


class RaffleOddsResponse(BaseModel):
    """Response for GET /raffle/odds."""

    ok: bool = True
    user_tickets: int
    total_tickets: int
    win_probability: float = Field(..., description="Percent, 2 decimals")
    win_probability_formatted: str
    prizes: list[int] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: Optional[bool] = Field(
        default=None,
        description="Whether the client may retry the same call later",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")
