"""
Module 08 - Settlement
Settlement-reference verification against the chain.
"""
from .verifier import (
    SIGNATURE_RE,
    SettlementOutcome,
    SettlementStatus,
    SolanaSettlementVerifier,
    is_valid_signature,
)

__all__ = [
    "SIGNATURE_RE",
    "SettlementOutcome",
    "SettlementStatus",
    "SolanaSettlementVerifier",
    "is_valid_signature",
]
