"""
Module 01 - Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy for the reward epoch & claim engine.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the engine."""

    # Schema & Validation Errors
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"

    # Encoding Errors
    INVALID_FIELD_WIDTH = "INVALID_FIELD_WIDTH"

    # Merkle & Commitment Errors
    INVALID_INDEX = "INVALID_INDEX"
    MERKLE_PROOF_INVALID = "MERKLE_PROOF_INVALID"
    ROOT_MISMATCH = "ROOT_MISMATCH"
    EMPTY_EPOCH = "EMPTY_EPOCH"
    EPOCH_ALREADY_COMMITTED = "EPOCH_ALREADY_COMMITTED"
    DUPLICATE_SUBJECT = "DUPLICATE_SUBJECT"
    EPOCH_NOT_FOUND = "EPOCH_NOT_FOUND"

    # Claim State Errors
    EPOCH_NOT_PUBLISHED = "EPOCH_NOT_PUBLISHED"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ALREADY_IN_FLIGHT = "ALREADY_IN_FLIGHT"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"
    CLAIM_FAILED = "CLAIM_FAILED"
    CLAIM_NOT_IN_FLIGHT = "CLAIM_NOT_IN_FLIGHT"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    LATE_SETTLEMENT = "LATE_SETTLEMENT"
    TX_ALREADY_USED = "TX_ALREADY_USED"

    # Settlement Errors
    SETTLEMENT_UNVERIFIED = "SETTLEMENT_UNVERIFIED"
    SETTLEMENT_NOT_CONFIGURED = "SETTLEMENT_NOT_CONFIGURED"
    INVALID_TX_SIGNATURE = "INVALID_TX_SIGNATURE"
    TX_WRONG_PROGRAM = "TX_WRONG_PROGRAM"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class RewardsError(BaseModel):
    """
    Base error model for structured error communication.

    Used for passing errors across the API boundary without exceptions,
    so clients get a specific reason code instead of a generic failure.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.NOT_ELIGIBLE],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "RewardsException":
        """Convert this error model to a raised exception."""
        return RewardsException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class RewardsException(Exception):
    """
    Base exception for all reward engine errors.

    Carries structured error information and can be converted
    to a RewardsError model.
    """

    def __init__(
        self,
        message: str,
        code: str = "REWARDS_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> RewardsError:
        """Convert this exception to a RewardsError model."""
        return RewardsError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CanonicalizationException(RewardsException):
    """Exception raised when canonical serialization fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
            retryable=False,
        )


class InvalidFieldWidthException(RewardsException):
    """A leaf field does not fit its fixed byte width."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        width: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_name:
            full_details["field"] = field_name
        if width is not None:
            full_details["width"] = width
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_FIELD_WIDTH,
            details=full_details,
            retryable=False,
        )


class InvalidIndexException(RewardsException, IndexError):
    """Leaf index is out of range for the built tree."""

    def __init__(self, index: int, leaf_count: int) -> None:
        super().__init__(
            message=f"Leaf index {index} out of range for {leaf_count} leaves",
            code=ErrorCodes.INVALID_INDEX,
            details={"index": index, "leaf_count": leaf_count},
            retryable=False,
        )


class MerkleVerificationException(RewardsException):
    """Exception raised when Merkle proof verification fails."""

    def __init__(
        self,
        message: str,
        leaf_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if leaf_index is not None:
            full_details["leaf_index"] = leaf_index
        super().__init__(
            message=message,
            code=ErrorCodes.MERKLE_PROOF_INVALID,
            details=full_details,
            retryable=False,
        )


class RootMismatchException(RewardsException):
    """The root observed on-chain differs from the committed root."""

    def __init__(self, epoch_number: int, expected: str, actual: str) -> None:
        super().__init__(
            message=f"Root mismatch for epoch {epoch_number}",
            code=ErrorCodes.ROOT_MISMATCH,
            details={"epoch": epoch_number, "expected": expected, "actual": actual},
            retryable=False,
        )


class EmptyEpochException(RewardsException):
    """No eligible leaves exist for the period; nothing is committed."""

    def __init__(self, week_key: str, details: dict[str, Any] | None = None) -> None:
        full_details = details or {}
        full_details["week_key"] = week_key
        super().__init__(
            message=f"No eligible reward entries for period {week_key}",
            code=ErrorCodes.EMPTY_EPOCH,
            details=full_details,
            retryable=False,
        )


class EpochAlreadyCommittedException(RewardsException):
    """The epoch (or its period) already has a frozen leaf set."""

    def __init__(
        self,
        message: str,
        epoch_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if epoch_number is not None:
            full_details["epoch"] = epoch_number
        super().__init__(
            message=message,
            code=ErrorCodes.EPOCH_ALREADY_COMMITTED,
            details=full_details,
            retryable=False,
        )


class DuplicateSubjectException(RewardsException):
    """Two leaves of one epoch share a subject key."""

    def __init__(self, subject_key: str, details: dict[str, Any] | None = None) -> None:
        full_details = details or {}
        full_details["subject_key"] = subject_key
        super().__init__(
            message=f"Duplicate subject key in leaf set: {subject_key}",
            code=ErrorCodes.DUPLICATE_SUBJECT,
            details=full_details,
            retryable=False,
        )


class EpochNotFoundException(RewardsException):
    """No epoch with the given number exists."""

    def __init__(self, epoch_number: int) -> None:
        super().__init__(
            message=f"Epoch {epoch_number} not found",
            code=ErrorCodes.EPOCH_NOT_FOUND,
            details={"epoch": epoch_number},
            retryable=False,
        )


class EpochNotPublishedException(RewardsException):
    """The epoch root has not been pushed to the verifying program yet."""

    def __init__(self, epoch_number: int) -> None:
        super().__init__(
            message=f"Epoch {epoch_number} is not published on-chain yet",
            code=ErrorCodes.EPOCH_NOT_PUBLISHED,
            details={"epoch": epoch_number},
            retryable=True,
        )


# =============================================================================
# Claim State Exceptions
# =============================================================================

class ClaimStateException(RewardsException):
    """Base class for claim lifecycle conflicts."""

    def __init__(
        self,
        message: str,
        code: str,
        user_id: str,
        epoch_number: int,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        full_details = details or {}
        full_details.setdefault("user_id", user_id)
        full_details.setdefault("epoch", epoch_number)
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=retryable,
        )


class NotEligibleException(ClaimStateException):
    """No leaf exists for this user in this epoch."""

    def __init__(self, user_id: str, epoch_number: int) -> None:
        super().__init__(
            message=f"User {user_id} has no allocation in epoch {epoch_number}",
            code=ErrorCodes.NOT_ELIGIBLE,
            user_id=user_id,
            epoch_number=epoch_number,
        )


class AlreadyInFlightException(ClaimStateException):
    """A claim for this (user, epoch) is already PROCESSING."""

    def __init__(self, user_id: str, epoch_number: int) -> None:
        super().__init__(
            message=f"Claim for epoch {epoch_number} is already in flight",
            code=ErrorCodes.ALREADY_IN_FLIGHT,
            user_id=user_id,
            epoch_number=epoch_number,
            retryable=True,
        )


class AlreadyConfirmedException(ClaimStateException):
    """The claim for this (user, epoch) is already CONFIRMED."""

    def __init__(self, user_id: str, epoch_number: int, tx_sig: str | None = None) -> None:
        super().__init__(
            message=f"Claim for epoch {epoch_number} is already confirmed",
            code=ErrorCodes.ALREADY_CONFIRMED,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"tx_sig": tx_sig},
        )


class ClaimFailedException(ClaimStateException):
    """The claim is FAILED and needs operator review."""

    def __init__(self, user_id: str, epoch_number: int, error: str | None = None) -> None:
        super().__init__(
            message=f"Claim for epoch {epoch_number} failed and requires operator review",
            code=ErrorCodes.CLAIM_FAILED,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"error": error},
        )


class ClaimNotInFlightException(ClaimStateException):
    """A confirmation arrived for a claim that was never submitted."""

    def __init__(self, user_id: str, epoch_number: int, status: str | None) -> None:
        super().__init__(
            message=f"Claim for epoch {epoch_number} is not in flight (status={status})",
            code=ErrorCodes.CLAIM_NOT_IN_FLIGHT,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"status": status},
        )


class AmountMismatchException(ClaimStateException):
    """Settled amount differs from the committed leaf amount."""

    def __init__(
        self,
        user_id: str,
        epoch_number: int,
        expected: int,
        settled: int,
    ) -> None:
        super().__init__(
            message=(
                f"Settled amount {settled} does not match committed amount "
                f"{expected} for epoch {epoch_number}"
            ),
            code=ErrorCodes.AMOUNT_MISMATCH,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"expected": str(expected), "settled": str(settled)},
        )


class LateSettlementException(ClaimStateException):
    """A settlement confirmation arrived after the claim left PROCESSING."""

    def __init__(
        self,
        user_id: str,
        epoch_number: int,
        tx_sig: str,
        status: str,
    ) -> None:
        super().__init__(
            message=(
                f"Settlement {tx_sig} arrived for epoch {epoch_number} "
                f"while claim is {status}"
            ),
            code=ErrorCodes.LATE_SETTLEMENT,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"tx_sig": tx_sig, "status": status},
        )


class TxAlreadyUsedException(ClaimStateException):
    """The settlement reference is already attached to another claim."""

    def __init__(self, user_id: str, epoch_number: int, tx_sig: str) -> None:
        super().__init__(
            message=f"Transaction {tx_sig} is already used by another claim",
            code=ErrorCodes.TX_ALREADY_USED,
            user_id=user_id,
            epoch_number=epoch_number,
            details={"tx_sig": tx_sig},
        )


class SettlementVerificationException(RewardsException):
    """The settlement reference could not be verified (yet)."""

    def __init__(
        self,
        message: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        full_details["reason"] = reason
        super().__init__(
            message=message,
            code=ErrorCodes.SETTLEMENT_UNVERIFIED,
            details=full_details,
            retryable=True,
        )


class InvalidTxSignatureException(RewardsException):
    """The settlement reference is not a well-formed transaction signature."""

    def __init__(self, tx_sig: str) -> None:
        super().__init__(
            message="Malformed transaction signature",
            code=ErrorCodes.INVALID_TX_SIGNATURE,
            details={"tx_sig": str(tx_sig)[:100]},
            retryable=False,
        )


class SettlementNotConfiguredException(RewardsException):
    """No settlement verifier is configured, so a reference cannot be checked."""

    def __init__(self, user_id: str, epoch_number: int) -> None:
        super().__init__(
            message="Settlement verification is not configured; claims are confirmed by an operator",
            code=ErrorCodes.SETTLEMENT_NOT_CONFIGURED,
            details={"user_id": user_id, "epoch_number": epoch_number},
            retryable=False,
        )


class WrongProgramException(RewardsException):
    """The settlement transaction never invoked the claim program."""

    def __init__(self, tx_sig: str, program_id: str) -> None:
        super().__init__(
            message=f"Transaction {tx_sig} does not invoke the claim program",
            code=ErrorCodes.TX_WRONG_PROGRAM,
            details={"tx_sig": tx_sig, "program_id": program_id},
            retryable=False,
        )
