"""
Module 08 - Settlement
File: verifier.py

Purpose: Check a claim's settlement reference (Solana transaction
signature) against the chain before the claim is confirmed.

Outcomes:
- CONFIRMED: the transaction landed without error at the required commitment
- FAILED: the transaction landed with an error (failure signal for the claim)
- PENDING: not found or not yet confirmed; retry later, state unchanged

When a claim program id is configured, a confirmed transaction must also
list that program among its account keys (``getTransaction``); otherwise
it is rejected with WrongProgramException.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from core.http.client import HttpClient, HttpError
from core.schemas.errors import (
    InvalidTxSignatureException,
    SettlementVerificationException,
    WrongProgramException,
)

logger = logging.getLogger(__name__)

# Base58 ed25519 signature: 64 bytes encode to 87 or 88 characters
SIGNATURE_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{87,88}$")

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def is_valid_signature(tx_sig: str) -> bool:
    return isinstance(tx_sig, str) and bool(SIGNATURE_RE.match(tx_sig))


class SettlementOutcome(str, Enum):
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class SettlementStatus:
    """Chain-side view of one settlement reference."""
    tx_sig: str
    outcome: SettlementOutcome
    confirmation_status: Optional[str] = None
    slot: Optional[int] = None
    error: Optional[Any] = None


class SolanaSettlementVerifier:
    """
    Looks up transaction signatures via JSON-RPC ``getSignatureStatuses``
    and, when ``program_id`` is set, ``getTransaction``.

    Example:
        >>> verifier = SolanaSettlementVerifier("https://api.mainnet-beta.solana.com")
        >>> verifier.check(tx_sig).outcome
        <SettlementOutcome.CONFIRMED: 'CONFIRMED'>
    """

    def __init__(
        self,
        rpc_url: str,
        http: Optional[HttpClient] = None,
        commitment: str = "confirmed",
        timeout: float = 15.0,
        program_id: Optional[str] = None,
    ) -> None:
        if commitment not in _COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment level: {commitment}")
        self.rpc_url = rpc_url
        self.http = http or HttpClient(timeout=timeout)
        self.commitment = commitment
        self.program_id = program_id

    def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = self.http.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (HttpError, ValueError) as e:
            raise SettlementVerificationException(
                f"RPC call {method} failed: {e}",
                reason="rpc_unavailable",
            ) from e
        if body.get("error"):
            raise SettlementVerificationException(
                f"RPC call {method} returned an error",
                reason="rpc_error",
                details={"error": body["error"]},
            )
        return body.get("result")

    def _account_keys(self, tx_sig: str) -> Optional[set[str]]:
        """Static and lookup-table account keys of a transaction, or None if not served yet."""
        tx = self._rpc(
            "getTransaction",
            [
                tx_sig,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if not tx:
            return None
        message = (tx.get("transaction") or {}).get("message") or {}
        keys = {
            key["pubkey"] if isinstance(key, dict) else key
            for key in message.get("accountKeys") or []
        }
        loaded = (tx.get("meta") or {}).get("loadedAddresses") or {}
        keys.update(loaded.get("writable") or [])
        keys.update(loaded.get("readonly") or [])
        return keys

    def check(self, tx_sig: str) -> SettlementStatus:
        """
        Resolve the chain status of a settlement signature.

        Raises:
            InvalidTxSignatureException: On a malformed signature
            WrongProgramException: The transaction never touched the claim program
            SettlementVerificationException: When the RPC endpoint cannot answer
        """
        if not is_valid_signature(tx_sig):
            raise InvalidTxSignatureException(tx_sig)

        result = self._rpc(
            "getSignatureStatuses",
            [[tx_sig], {"searchTransactionHistory": True}],
        )
        values = (result or {}).get("value") or [None]
        status = values[0]
        if status is None:
            return SettlementStatus(tx_sig=tx_sig, outcome=SettlementOutcome.PENDING)

        confirmation = status.get("confirmationStatus")
        slot = status.get("slot")
        if status.get("err") is not None:
            logger.error("Settlement %s failed on-chain: %s", tx_sig, status["err"])
            return SettlementStatus(
                tx_sig=tx_sig,
                outcome=SettlementOutcome.FAILED,
                confirmation_status=confirmation,
                slot=slot,
                error=status["err"],
            )

        if _COMMITMENT_RANK.get(confirmation, -1) >= _COMMITMENT_RANK[self.commitment]:
            outcome = SettlementOutcome.CONFIRMED
        else:
            outcome = SettlementOutcome.PENDING

        if outcome == SettlementOutcome.CONFIRMED and self.program_id:
            keys = self._account_keys(tx_sig)
            if keys is None:
                # Status is visible before the transaction itself is served
                outcome = SettlementOutcome.PENDING
            elif self.program_id not in keys:
                logger.error("Settlement %s does not invoke program %s", tx_sig, self.program_id)
                raise WrongProgramException(tx_sig, self.program_id)

        return SettlementStatus(
            tx_sig=tx_sig,
            outcome=outcome,
            confirmation_status=confirmation,
            slot=slot,
        )
