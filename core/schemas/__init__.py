"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Version constants
from .versioning import (
    DEFAULT_LEAF_VERSION,
    LAYOUT_ANCHOR,
    LAYOUT_CANONICAL,
    LEAF_VERSION_V1,
    LEAF_VERSION_V2,
    SUPPORTED_LAYOUTS,
    SUPPORTED_LEAF_VERSIONS,
    LayoutName,
    LeafVersion,
    UnsupportedLayoutError,
    UnsupportedLeafVersionError,
    assert_supported_leaf_version,
)

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonicalize_value,
    dumps_canonical,
    ensure_utc,
    format_datetime_canonical,
)

# Error models and exceptions
from .errors import (
    AlreadyConfirmedException,
    AlreadyInFlightException,
    AmountMismatchException,
    CanonicalizationException,
    ClaimFailedException,
    ClaimNotInFlightException,
    ClaimStateException,
    DuplicateSubjectException,
    EmptyEpochException,
    EpochAlreadyCommittedException,
    EpochNotFoundException,
    EpochNotPublishedException,
    ErrorCodes,
    InvalidFieldWidthException,
    InvalidIndexException,
    InvalidTxSignatureException,
    LateSettlementException,
    MerkleVerificationException,
    NotEligibleException,
    RewardsError,
    RewardsException,
    RootMismatchException,
    SettlementNotConfiguredException,
    SettlementVerificationException,
    TxAlreadyUsedException,
    WrongProgramException,
)

# Reward schemas
from .rewards import (
    U64_MAX,
    BuildResult,
    ClaimIncident,
    ClaimRecord,
    ClaimStatus,
    EpochSummary,
    IncidentKind,
    LeafRecord,
    ProofBundle,
    ReferralEdge,
    ReferralReward,
    RewardEvent,
)

__all__ = [
    # Versioning
    "DEFAULT_LEAF_VERSION",
    "LAYOUT_ANCHOR",
    "LAYOUT_CANONICAL",
    "LEAF_VERSION_V1",
    "LEAF_VERSION_V2",
    "SUPPORTED_LAYOUTS",
    "SUPPORTED_LEAF_VERSIONS",
    "LayoutName",
    "LeafVersion",
    "UnsupportedLayoutError",
    "UnsupportedLeafVersionError",
    "assert_supported_leaf_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonicalize_value",
    "dumps_canonical",
    "ensure_utc",
    "format_datetime_canonical",
    # Errors
    "AlreadyConfirmedException",
    "AlreadyInFlightException",
    "AmountMismatchException",
    "CanonicalizationException",
    "ClaimFailedException",
    "ClaimNotInFlightException",
    "ClaimStateException",
    "DuplicateSubjectException",
    "EmptyEpochException",
    "EpochAlreadyCommittedException",
    "EpochNotFoundException",
    "EpochNotPublishedException",
    "ErrorCodes",
    "InvalidFieldWidthException",
    "InvalidIndexException",
    "InvalidTxSignatureException",
    "LateSettlementException",
    "MerkleVerificationException",
    "NotEligibleException",
    "RewardsError",
    "RewardsException",
    "RootMismatchException",
    "SettlementNotConfiguredException",
    "SettlementVerificationException",
    "TxAlreadyUsedException",
    "WrongProgramException",
    # Rewards
    "U64_MAX",
    "BuildResult",
    "ClaimIncident",
    "ClaimRecord",
    "ClaimStatus",
    "EpochSummary",
    "IncidentKind",
    "LeafRecord",
    "ProofBundle",
    "ReferralEdge",
    "ReferralReward",
    "RewardEvent",
]
