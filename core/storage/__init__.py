"""
Module 03 - Storage
Persistent epoch, leaf, claim and incident tables.
"""
from .models import Base, ClaimRow, EpochRow, IncidentRow, IntString, LeafRow, UTCDateTime
from .store import RewardStore

__all__ = [
    "Base",
    "ClaimRow",
    "EpochRow",
    "IncidentRow",
    "IntString",
    "LeafRow",
    "UTCDateTime",
    "RewardStore",
]
