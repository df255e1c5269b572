"""
Module 05 - Referrals
Multi-level referral reward attribution.
"""
from .resolver import (
    BPS_DENOMINATOR,
    DEFAULT_TIER_BPS,
    ReferralResolver,
    base_earnings,
    mul_bps,
)

__all__ = [
    "BPS_DENOMINATOR",
    "DEFAULT_TIER_BPS",
    "ReferralResolver",
    "base_earnings",
    "mul_bps",
]
