"""
Module 09D - API Error Handling

Standardized error handling for the API. Engine exceptions keep their
machine-readable code so clients can decide whether to retry, wait or
contact support.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas.errors import ErrorCodes, RewardsException

logger = logging.getLogger(__name__)


# HTTP status per engine error code; anything unlisted is a 400
STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.EPOCH_NOT_FOUND: 404,
    ErrorCodes.NOT_ELIGIBLE: 404,
    ErrorCodes.EPOCH_ALREADY_COMMITTED: 409,
    ErrorCodes.DUPLICATE_SUBJECT: 409,
    ErrorCodes.ROOT_MISMATCH: 409,
    ErrorCodes.EPOCH_NOT_PUBLISHED: 409,
    ErrorCodes.ALREADY_IN_FLIGHT: 409,
    ErrorCodes.ALREADY_CONFIRMED: 409,
    ErrorCodes.CLAIM_FAILED: 409,
    ErrorCodes.CLAIM_NOT_IN_FLIGHT: 409,
    ErrorCodes.AMOUNT_MISMATCH: 409,
    ErrorCodes.LATE_SETTLEMENT: 409,
    ErrorCodes.TX_ALREADY_USED: 409,
    ErrorCodes.INVALID_FIELD_WIDTH: 422,
    ErrorCodes.INVALID_INDEX: 422,
    ErrorCodes.SETTLEMENT_UNVERIFIED: 503,
    ErrorCodes.SETTLEMENT_NOT_CONFIGURED: 503,
    ErrorCodes.INVALID_TX_SIGNATURE: 400,
    ErrorCodes.TX_WRONG_PROGRAM: 400,
}


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Missing or wrong caller credentials."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
            details=details,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def rewards_error_handler(request: Request, exc: RewardsException) -> JSONResponse:
    """Handle engine exceptions, keeping their reason code."""
    status_code = STATUS_BY_CODE.get(exc.code, 400)
    if status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    error = exc.to_error_model()
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(**error.model_dump()),
        ).model_dump(mode="json"),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
