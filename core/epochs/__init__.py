"""
Module 04 - Epochs
Epoch building, publishing and ISO week keys.
"""
from .builder import EpochBuilder, EpochEntry, compute_build_hash
from .weeks import (
    parse_week_key,
    previous_week_key,
    utc_now,
    week_end,
    week_key,
    week_start,
)

__all__ = [
    "EpochBuilder",
    "EpochEntry",
    "compute_build_hash",
    "parse_week_key",
    "previous_week_key",
    "utc_now",
    "week_end",
    "week_key",
    "week_start",
]
