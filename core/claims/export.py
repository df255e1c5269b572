"""
Module 06 - Claims
File: export.py

Purpose: Claim history report as CSV, one row per claim.
Fields containing delimiters, quotes or newlines are quoted per RFC 4180.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable, TextIO

from core.schemas.canonical import format_datetime_canonical
from core.schemas.rewards import ClaimRecord

CSV_COLUMNS: tuple[str, ...] = (
    "started_at",
    "week_key",
    "epoch_number",
    "amount",
    "status",
    "tx_sig",
)


def _row(claim: ClaimRecord) -> list[str]:
    return [
        format_datetime_canonical(claim.started_at) if claim.started_at else "",
        claim.week_key or "",
        str(claim.epoch_number),
        str(claim.amount),
        claim.status.value,
        claim.tx_sig or "",
    ]


def write_claims_csv(claims: Iterable[ClaimRecord], out: TextIO) -> int:
    """Write the header and one row per claim. Returns the row count."""
    writer = csv.writer(out, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    count = 0
    for claim in claims:
        writer.writerow(_row(claim))
        count += 1
    return count


def claims_to_csv(claims: Iterable[ClaimRecord]) -> str:
    """Render the claim history report as a string."""
    buffer = io.StringIO()
    write_claims_csv(claims, buffer)
    return buffer.getvalue()
