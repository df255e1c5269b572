"""
Module 06 - Claims
Claim state machine and claim history export.
"""
from .export import CSV_COLUMNS, claims_to_csv, write_claims_csv
from .state_machine import DEFAULT_STALE_AFTER, ClaimStateMachine, build_proof_bundle

__all__ = [
    "CSV_COLUMNS",
    "claims_to_csv",
    "write_claims_csv",
    "DEFAULT_STALE_AFTER",
    "ClaimStateMachine",
    "build_proof_bundle",
]
