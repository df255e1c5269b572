"""API request and response models."""

from api.models.requests import (
    BeginClaimRequest,
    BuildEpochRequest,
    ConfirmClaimRequest,
    FailClaimRequest,
    PublishEpochRequest,
)
from api.models.responses import (
    BuildEpochResponse,
    ClaimListResponse,
    ClaimResponse,
    EpochListResponse,
    EpochResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    IncidentListResponse,
    ProofResponse,
    RaffleOddsResponse,
    SweepResponse,
)

__all__ = [
    "BeginClaimRequest",
    "BuildEpochRequest",
    "ConfirmClaimRequest",
    "FailClaimRequest",
    "PublishEpochRequest",
    "BuildEpochResponse",
    "ClaimListResponse",
    "ClaimResponse",
    "EpochListResponse",
    "EpochResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "IncidentListResponse",
    "ProofResponse",
    "RaffleOddsResponse",
    "SweepResponse",
]
