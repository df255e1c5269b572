"""
Module 09C - CLI Epoch Commands

Build, publish and list reward epochs.

Usage:
    rewards build 2026-W03 --events events.json [--edges edges.json] [--json]
    rewards publish 4 [--root <hex>] [--json]
    rewards epochs [--unpublished] [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

import yaml

from core.engine import RewardEngine
from core.schemas.errors import RewardsException
from core.schemas.rewards import EpochSummary, ReferralEdge, RewardEvent


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def load_data_file(path: str | Path) -> Any:
    """Read a JSON or YAML input file."""
    path = Path(path)
    with open(path, "r") as f:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f)
        return json.load(f)


def get_engine(args: Namespace) -> RewardEngine:
    return RewardEngine.from_config(args.cli_config.runtime)


def _print_summary(summary: EpochSummary, header: str) -> None:
    print(header)
    print(f"  epoch:        {summary.epoch_number}")
    print(f"  week:         {summary.week_key} (rev {summary.revision})")
    print(f"  leaf version: {summary.version} [{summary.layout}]")
    print(f"  leaves:       {summary.leaf_count}")
    print(f"  total amount: {summary.total_amount}")
    print(f"  root:         {summary.root_hex}")
    print(f"  on-chain:     {'yes' if summary.set_on_chain else 'no'}")


def build_cmd(args: Namespace) -> int:
    """Aggregate a period's events and commit the epoch."""
    events = [RewardEvent.model_validate(e) for e in load_data_file(args.events)]
    edges = []
    if args.edges:
        edges = [ReferralEdge.model_validate(e) for e in load_data_file(args.edges)]
    wallets = load_data_file(args.wallets) if args.wallets else None

    engine = get_engine(args)
    try:
        result = engine.build_week(
            args.week_key,
            events,
            edges=edges,
            wallets=wallets,
            epoch_number=args.epoch,
            chain_latest=args.chain_latest,
            correction=args.correction,
        )
    except RewardsException as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps({
            "already_exists": result.already_exists,
            "epoch": result.epoch.model_dump(mode="json"),
        }, indent=2))
    else:
        header = "Epoch already committed (no changes)" if result.already_exists else "Epoch committed"
        _print_summary(result.epoch, header)
    return EXIT_SUCCESS


def publish_cmd(args: Namespace) -> int:
    """Mark an epoch root as written on-chain and open its claims."""
    engine = get_engine(args)
    try:
        summary = engine.builder.publish(args.epoch, observed_root_hex=args.root)
    except RewardsException as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps(summary.model_dump(mode="json"), indent=2))
    else:
        _print_summary(summary, "Epoch published")
    return EXIT_SUCCESS


def list_cmd(args: Namespace) -> int:
    engine = get_engine(args)
    rows = engine.store.list_epochs(unpublished_only=args.unpublished)
    summaries = [row.to_summary() for row in rows]

    if args.json:
        print(json.dumps([s.model_dump(mode="json") for s in summaries], indent=2))
        return EXIT_SUCCESS

    if not summaries:
        print("No epochs")
        return EXIT_SUCCESS
    for s in summaries:
        marker = "" if s.set_on_chain else " [unpublished]"
        print(f"#{s.epoch_number} {s.week_key} rev{s.revision} v{s.version} "
              f"leaves={s.leaf_count} total={s.total_amount}{marker}")
    return EXIT_SUCCESS

