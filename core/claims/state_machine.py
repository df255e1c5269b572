"""
Module 06 - Claims
File: state_machine.py

Purpose: Claim lifecycle from proof issuance through settlement.

    PENDING ──begin──▶ PROCESSING ──confirm──▶ CONFIRMED
       ▲                   │
       └──── stale sweep ──┘            any ──fail──▶ FAILED

Every transition is a compare-and-swap against the store, so concurrent
begin calls for one (user, epoch) leave exactly one winner, and the
stale sweep can never revert a claim that already left PROCESSING.
A settlement arriving after stale reversion is surfaced as an error and
recorded for reconciliation; it is never applied silently.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from core.crypto.hashing import from_hex32
from core.merkle.leaf_encoding import get_layout
from core.merkle.merkle_proofs import MerkleVerifier, proof_from_json, siblings_from_hex
from core.schemas.errors import (
    AlreadyConfirmedException,
    AlreadyInFlightException,
    AmountMismatchException,
    ClaimFailedException,
    ClaimNotInFlightException,
    EpochNotFoundException,
    EpochNotPublishedException,
    InvalidTxSignatureException,
    LateSettlementException,
    MerkleVerificationException,
    NotEligibleException,
    SettlementNotConfiguredException,
    SettlementVerificationException,
    TxAlreadyUsedException,
)
from core.schemas.rewards import ClaimIncident, ClaimRecord, ClaimStatus, IncidentKind, ProofBundle
from core.epochs.weeks import utc_now
from core.settlement.verifier import (
    SettlementOutcome,
    SolanaSettlementVerifier,
    is_valid_signature,
)
from core.storage.models import ClaimRow, EpochRow, LeafRow
from core.storage.store import RewardStore

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=30)


def build_proof_bundle(epoch: EpochRow, leaf: LeafRow) -> ProofBundle:
    """Assemble the claim payload for one leaf from stored rows."""
    proof = proof_from_json(
        leaf.proof_json,
        leaf=from_hex32(leaf.leaf_hash),
        index=leaf.leaf_index,
        root=from_hex32(epoch.root_hex),
    )
    return ProofBundle(
        epoch_number=epoch.epoch_number,
        week_key=epoch.week_key,
        version=epoch.version,
        layout=epoch.layout,
        root_hex=epoch.root_hex,
        index=leaf.leaf_index,
        amount=leaf.amount,
        subject_key=leaf.subject_key,
        salt=leaf.salt,
        leaf_hash=leaf.leaf_hash,
        proof=[s.hex() for s in proof.siblings],
        directions=proof.directions,
    )


class ClaimStateMachine:
    """
    Owns every claim state change.

    Example:
        >>> claims = ClaimStateMachine(store)
        >>> bundle = claims.get_proof("user-1", 4)
        >>> claims.begin_claim("user-1", 4, index=bundle.index, proof=bundle.proof)
        >>> claims.confirm_claim("user-1", 4, tx_sig, settled_amount=bundle.amount)
    """

    def __init__(
        self,
        store: RewardStore,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable = utc_now,
        settlement: Optional[SolanaSettlementVerifier] = None,
    ) -> None:
        self.store = store
        self.stale_after = stale_after
        self.clock = clock
        self.settlement = settlement

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _epoch(self, epoch_number: int) -> EpochRow:
        epoch = self.store.get_epoch(epoch_number)
        if epoch is None:
            raise EpochNotFoundException(epoch_number)
        return epoch

    def _leaf(self, user_id: str, epoch_number: int) -> LeafRow:
        leaf = self.store.get_leaf(epoch_number, user_id)
        if leaf is None:
            raise NotEligibleException(user_id, epoch_number)
        return leaf

    def _record(self, user_id: str, epoch_number: int) -> ClaimRecord:
        row = self.store.get_claim(user_id, epoch_number)
        epoch = self.store.get_epoch(epoch_number)
        return row.to_record(epoch.week_key if epoch else None)

    def get_proof(
        self,
        user_id: str,
        epoch_number: int,
        published_only: bool = False,
    ) -> ProofBundle:
        """
        Inclusion proof for the user's leaf.

        Raises:
            EpochNotFoundException: If the epoch does not exist
            EpochNotPublishedException: If ``published_only`` and the root is not on-chain
            NotEligibleException: If the user has no leaf in the epoch
        """
        epoch = self._epoch(epoch_number)
        if published_only and not epoch.set_on_chain:
            raise EpochNotPublishedException(epoch_number)
        leaf = self._leaf(user_id, epoch_number)
        return build_proof_bundle(epoch, leaf)

    def get_claim(self, user_id: str, epoch_number: int) -> Optional[ClaimRecord]:
        if self.store.get_claim(user_id, epoch_number) is None:
            return None
        return self._record(user_id, epoch_number)

    def claimables(self, user_id: str) -> list[ProofBundle]:
        """
        Proof bundles for every published epoch the user can still claim.

        Epochs whose claim is CONFIRMED or FAILED are left out; PENDING and
        PROCESSING ones are included. Oldest epoch first.
        """
        done = {ClaimStatus.CONFIRMED.value, ClaimStatus.FAILED.value}
        return [
            build_proof_bundle(epoch, leaf)
            for epoch, leaf, status in self.store.list_user_leaves(user_id, published_only=True)
            if status not in done
        ]

    def history(self, user_id: Optional[str] = None) -> list[ClaimRecord]:
        return self.store.list_claims(user_id=user_id)

    def incidents(self, limit: int = 100) -> list[ClaimIncident]:
        return self.store.list_incidents(limit=limit)

    # ------------------------------------------------------------------
    # PENDING -> PROCESSING
    # ------------------------------------------------------------------

    def _check_presented_proof(
        self,
        epoch: EpochRow,
        leaf: LeafRow,
        index: Optional[int],
        proof: Optional[Sequence[str]],
    ) -> None:
        if index is not None and index != leaf.leaf_index:
            raise MerkleVerificationException(
                "Presented index does not match the committed leaf",
                leaf_index=index,
                details={"expected_index": leaf.leaf_index},
            )
        if proof is None:
            return
        try:
            siblings = siblings_from_hex(proof)
        except ValueError as e:
            raise MerkleVerificationException(
                f"Malformed proof element: {e}", leaf_index=leaf.leaf_index
            ) from e
        ok = MerkleVerifier.verify_entry(
            version=epoch.version,
            subject_key=bytes.fromhex(leaf.subject_key),
            epoch_number=epoch.epoch_number,
            amount=leaf.amount,
            index=leaf.leaf_index,
            siblings=siblings,
            root=from_hex32(epoch.root_hex),
            salt=bytes.fromhex(leaf.salt) if leaf.salt else None,
            layout=get_layout(epoch.layout),
        )
        if not ok:
            raise MerkleVerificationException(
                "Presented proof does not verify against the epoch root",
                leaf_index=leaf.leaf_index,
            )

    def begin_claim(
        self,
        user_id: str,
        epoch_number: int,
        index: Optional[int] = None,
        proof: Optional[Sequence[str]] = None,
    ) -> ClaimRecord:
        """
        Move the user's claim PENDING -> PROCESSING.

        Raises:
            EpochNotFoundException / EpochNotPublishedException
            NotEligibleException: No leaf for the user
            MerkleVerificationException: Presented index/proof is wrong
            AlreadyInFlightException: Another attempt is PROCESSING
            AlreadyConfirmedException: The claim is already settled
            ClaimFailedException: The claim is FAILED (operator review)
        """
        epoch = self._epoch(epoch_number)
        if not epoch.set_on_chain:
            raise EpochNotPublishedException(epoch_number)
        leaf = self._leaf(user_id, epoch_number)
        if index is not None or proof is not None:
            self._check_presented_proof(epoch, leaf, index, proof)

        now = self.clock()
        self.store.insert_claim(user_id, epoch_number, leaf.amount, now)
        won = self.store.transition_claim(
            user_id,
            epoch_number,
            [ClaimStatus.PENDING],
            ClaimStatus.PROCESSING,
            now,
            started_at=now,
            amount=leaf.amount,
        )
        if won:
            logger.info("Claim started user=%s epoch=%d amount=%d", user_id, epoch_number, leaf.amount)
            return self._record(user_id, epoch_number)

        current = self.store.get_claim(user_id, epoch_number)
        status = ClaimStatus(current.status)
        if status == ClaimStatus.CONFIRMED:
            raise AlreadyConfirmedException(user_id, epoch_number, current.tx_sig)
        if status == ClaimStatus.FAILED:
            raise ClaimFailedException(user_id, epoch_number, current.error)
        raise AlreadyInFlightException(user_id, epoch_number)

    # ------------------------------------------------------------------
    # PROCESSING -> CONFIRMED
    # ------------------------------------------------------------------

    def confirm_claim(
        self,
        user_id: str,
        epoch_number: int,
        tx_sig: str,
        settled_amount: int,
    ) -> ClaimRecord:
        """
        Record a verified settlement.

        Callers are trusted to have verified ``tx_sig`` already: settle()
        or an operator. The settled amount must equal the committed leaf
        amount exactly. Repeating a confirmation with the same tx_sig is a
        no-op.

        Raises:
            InvalidTxSignatureException: tx_sig is not a transaction signature
            NotEligibleException: No leaf for the user
            AmountMismatchException: Settled != committed (critical; claim untouched)
            TxAlreadyUsedException: tx_sig belongs to another claim
            AlreadyConfirmedException: Confirmed earlier with another tx_sig
            LateSettlementException: Claim was reverted or failed meanwhile
            ClaimNotInFlightException: Claim was never submitted
        """
        if not is_valid_signature(tx_sig):
            raise InvalidTxSignatureException(tx_sig)
        leaf = self._leaf(user_id, epoch_number)
        now = self.clock()

        current = self.store.get_claim(user_id, epoch_number)
        if current is None:
            raise ClaimNotInFlightException(user_id, epoch_number, None)
        if current.status == ClaimStatus.CONFIRMED.value:
            return self._already_confirmed(current, tx_sig)

        if settled_amount != leaf.amount:
            logger.critical(
                "AMOUNT MISMATCH user=%s epoch=%d committed=%d settled=%d tx=%s",
                user_id, epoch_number, leaf.amount, settled_amount, tx_sig,
            )
            self.store.add_incident(
                user_id,
                epoch_number,
                IncidentKind.AMOUNT_MISMATCH,
                now,
                tx_sig=tx_sig,
                details={"expected": str(leaf.amount), "settled": str(settled_amount)},
            )
            raise AmountMismatchException(user_id, epoch_number, leaf.amount, settled_amount)

        other = self.store.get_claim_by_tx_sig(tx_sig)
        if other is not None and (other.user_id, other.epoch_number) != (user_id, epoch_number):
            raise TxAlreadyUsedException(user_id, epoch_number, tx_sig)

        try:
            won = self.store.transition_claim(
                user_id,
                epoch_number,
                [ClaimStatus.PROCESSING],
                ClaimStatus.CONFIRMED,
                now,
                tx_sig=tx_sig,
                confirmed_at=now,
                error=None,
            )
        except IntegrityError as e:
            raise TxAlreadyUsedException(user_id, epoch_number, tx_sig) from e

        if won:
            logger.info("Claim confirmed user=%s epoch=%d tx=%s", user_id, epoch_number, tx_sig)
            return self._record(user_id, epoch_number)

        current = self.store.get_claim(user_id, epoch_number)
        status = ClaimStatus(current.status)
        if status == ClaimStatus.CONFIRMED:
            return self._already_confirmed(current, tx_sig)
        if status == ClaimStatus.FAILED or (
            status == ClaimStatus.PENDING and current.started_at is not None
        ):
            logger.error(
                "Late settlement user=%s epoch=%d tx=%s arrived while claim is %s",
                user_id, epoch_number, tx_sig, status.value,
            )
            self.store.add_incident(
                user_id,
                epoch_number,
                IncidentKind.LATE_SETTLEMENT,
                now,
                tx_sig=tx_sig,
                details={"status": status.value, "amount": str(settled_amount)},
            )
            raise LateSettlementException(user_id, epoch_number, tx_sig, status.value)
        raise ClaimNotInFlightException(user_id, epoch_number, status.value)

    def _already_confirmed(self, current: ClaimRow, tx_sig: str) -> ClaimRecord:
        if current.tx_sig == tx_sig:
            return self._record(current.user_id, current.epoch_number)
        raise AlreadyConfirmedException(current.user_id, current.epoch_number, current.tx_sig)

    # ------------------------------------------------------------------
    # any -> FAILED
    # ------------------------------------------------------------------

    def fail_claim(self, user_id: str, epoch_number: int, reason: str) -> ClaimRecord:
        """
        Mark a claim FAILED on an explicit failure signal. No automatic retry.

        Raises:
            ClaimNotInFlightException: If no claim exists
        """
        now = self.clock()
        current = self.store.get_claim(user_id, epoch_number)
        if current is None:
            raise ClaimNotInFlightException(user_id, epoch_number, None)
        if current.status == ClaimStatus.FAILED.value:
            return self._record(user_id, epoch_number)

        previous = ClaimStatus(current.status)
        won = self.store.transition_claim(
            user_id,
            epoch_number,
            [previous],
            ClaimStatus.FAILED,
            now,
            error=reason,
        )
        if not won:
            # Moved underneath us; apply the failure to whatever state it is in now
            return self.fail_claim(user_id, epoch_number, reason)

        logger.error(
            "Claim failed user=%s epoch=%d (was %s): %s",
            user_id, epoch_number, previous.value, reason,
        )
        if previous == ClaimStatus.CONFIRMED:
            self.store.add_incident(
                user_id,
                epoch_number,
                IncidentKind.CONFIRMED_THEN_FAILED,
                now,
                tx_sig=current.tx_sig,
                details={"reason": reason},
            )
        return self._record(user_id, epoch_number)

    # ------------------------------------------------------------------
    # Settlement verification
    # ------------------------------------------------------------------

    def settle(
        self,
        user_id: str,
        epoch_number: int,
        tx_sig: str,
        settled_amount: int,
    ) -> ClaimRecord:
        """
        Verify ``tx_sig`` on-chain, then confirm or fail the claim.

        This is the only path that accepts a settlement reference from the
        claimant, so it refuses to run without a verifier.

        Raises:
            InvalidTxSignatureException: tx_sig is not a transaction signature
            SettlementNotConfiguredException: No verifier is configured
            WrongProgramException: The transaction did not invoke the claim program
            SettlementVerificationException: Not (yet) confirmed on-chain;
                state is unchanged and the caller may retry
        """
        if not is_valid_signature(tx_sig):
            raise InvalidTxSignatureException(tx_sig)
        if self.settlement is None:
            logger.warning(
                "Refusing unverified settlement user=%s epoch=%d: no verifier configured",
                user_id, epoch_number,
            )
            raise SettlementNotConfiguredException(user_id, epoch_number)

        status = self.settlement.check(tx_sig)
        if status.outcome == SettlementOutcome.CONFIRMED:
            return self.confirm_claim(user_id, epoch_number, tx_sig, settled_amount)
        if status.outcome == SettlementOutcome.FAILED:
            return self.fail_claim(
                user_id, epoch_number, f"transaction {tx_sig} failed on-chain: {status.error}"
            )
        raise SettlementVerificationException(
            f"Transaction {tx_sig} is not confirmed yet",
            reason="not_confirmed",
            details={"tx_sig": tx_sig, "confirmation_status": status.confirmation_status},
        )

    # ------------------------------------------------------------------
    # PROCESSING -> PENDING (stale sweep)
    # ------------------------------------------------------------------

    def sweep_stale(self) -> int:
        """
        Revert claims stuck in PROCESSING longer than ``stale_after``.

        Safe to run concurrently and repeatedly. Returns the number reverted.
        """
        now = self.clock()
        threshold = now - self.stale_after
        reverted = self.store.revert_stale_claims(threshold, now)
        logger.info(
            "Stale claim sweep reverted %d claim(s) started before %s",
            reverted, threshold.isoformat(),
        )
        return reverted
