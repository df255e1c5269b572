"""
Module 09C - CLI Claim Commands

Proof export, offline proof verification, stale sweep and claim
history export.

Usage:
    rewards proof <user_id> <epoch> [--out proof.json]
    rewards verify-proof proof.json [--json]
    rewards sweep [--json]
    rewards export [--user <user_id>] [--out claims.csv]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from pathlib import Path

from pydantic import ValidationError

from core.claims.export import write_claims_csv
from core.crypto.hashing import from_hex32
from core.merkle.leaf_encoding import get_layout
from core.merkle.merkle_proofs import MerkleVerifier
from core.schemas.errors import RewardsException
from core.schemas.rewards import ProofBundle
from rewards_cli.commands.epochs import get_engine


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def proof_cmd(args: Namespace) -> int:
    """Print or save the proof bundle for one user's leaf."""
    engine = get_engine(args)
    try:
        bundle = engine.claims.get_proof(args.user_id, args.epoch)
    except RewardsException as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    text = json.dumps(bundle.model_dump(mode="json"), indent=2)
    if args.out:
        Path(args.out).write_text(text + "\n")
        print(f"Proof written to {args.out}")
    else:
        print(text)
    return EXIT_SUCCESS


def check_bundle(bundle: ProofBundle) -> bool:
    """Recompute the leaf from the bundle's fields and fold it to the root."""
    try:
        siblings = [from_hex32(h) for h in bundle.proof]
        root = from_hex32(bundle.root_hex)
        subject = from_hex32(bundle.subject_key)
        salt = bytes.fromhex(bundle.salt) if bundle.salt else None
    except ValueError:
        return False
    return MerkleVerifier.verify_entry(
        bundle.version,
        subject,
        bundle.epoch_number,
        bundle.amount,
        bundle.index,
        siblings,
        root,
        salt=salt,
        layout=get_layout(bundle.layout),
    )


def verify_proof_cmd(args: Namespace) -> int:
    """Verify a saved proof bundle offline. Exit 2 if it does not verify."""
    try:
        bundle = ProofBundle.model_validate_json(Path(args.proof_path).read_text())
    except (OSError, ValidationError) as e:
        print(f"Error: cannot read proof bundle: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    ok = check_bundle(bundle)
    if args.json:
        print(json.dumps({
            "ok": ok,
            "epoch_number": bundle.epoch_number,
            "index": bundle.index,
            "root_hex": bundle.root_hex,
        }, indent=2))
    else:
        status = "VALID" if ok else "INVALID"
        print(f"Proof for leaf {bundle.index} in epoch {bundle.epoch_number}: {status}")
    return EXIT_SUCCESS if ok else EXIT_VERIFICATION_FAILED


def sweep_cmd(args: Namespace) -> int:
    """Revert claims stuck in PROCESSING."""
    engine = get_engine(args)
    reverted = engine.claims.sweep_stale()
    if args.json:
        print(json.dumps({"reverted_count": reverted}))
    else:
        print(f"Reverted {reverted} stale claim(s)")
    return EXIT_SUCCESS


def export_cmd(args: Namespace) -> int:
    """Write the claim history report as CSV."""
    engine = get_engine(args)
    claims = engine.claims.history(args.user)
    if args.out:
        with open(args.out, "w", newline="") as f:
            count = write_claims_csv(claims, f)
        print(f"Exported {count} claim(s) to {args.out}")
    else:
        write_claims_csv(claims, sys.stdout)
    return EXIT_SUCCESS
