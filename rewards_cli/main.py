"""
Module 09C - CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m rewards_cli build <week_key> --events PATH [--edges PATH] [--wallets PATH] [--json]
    python -m rewards_cli publish <epoch> [--root HEX] [--json]
    python -m rewards_cli epochs [--unpublished] [--json]
    python -m rewards_cli proof <user_id> <epoch> [--out PATH]
    python -m rewards_cli verify-proof <proof_path> [--json]
    python -m rewards_cli sweep [--json]
    python -m rewards_cli export [--user USER_ID] [--out PATH]
    python -m rewards_cli odds --total N (--tickets N | --credits N) [--pool N] [--json]
    python -m rewards_cli config --init

Environment Variables:
    REWARDS_DATABASE_URL        SQLAlchemy database URL
    REWARDS_LEAF_VERSION        Leaf schema version (1 or 2)
    REWARDS_LEAF_LAYOUT         Leaf byte layout (canonical or anchor)
    REWARDS_LOG_LEVEL           Log level (default: INFO)
    REWARDS_LOG_FILE            Optional log file
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from rewards_cli.commands import claims, epochs, raffle
from rewards_cli.config import get_default_config_template, load_config


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="rewards",
        description="Epoch Rewards CLI - Build and publish reward epochs, export proofs, manage claims.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file, JSON or YAML (default: ./rewards.json or ~/.config/rewards/config.json)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- build command ---
    build_parser = subparsers.add_parser(
        "build",
        help="Build and commit the epoch for a period",
        description="Aggregate reward events, resolve referral rewards and commit the Merkle epoch.",
    )
    build_parser.add_argument("week_key", type=str, help="ISO week key, e.g. 2026-W03")
    build_parser.add_argument(
        "--events",
        type=str,
        required=True,
        help="JSON or YAML list of reward events",
    )
    build_parser.add_argument("--edges", type=str, default=None, help="JSON or YAML list of referral edges")
    build_parser.add_argument("--wallets", type=str, default=None, help="JSON or YAML map of user id to wallet")
    build_parser.add_argument("--epoch", type=_positive_int, default=None, help="Explicit epoch number")
    build_parser.add_argument(
        "--chain-latest",
        type=int,
        default=None,
        help="Latest epoch number already on-chain (numbering continues above it)",
    )
    build_parser.add_argument(
        "--correction",
        action="store_true",
        default=False,
        help="Mint a new revision for an already committed period",
    )
    build_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    build_parser.set_defaults(func=epochs.build_cmd)

    # --- publish command ---
    publish_parser = subparsers.add_parser(
        "publish",
        help="Mark an epoch root as published on-chain",
        description="Flip the on-chain flag after checking the observed root, and open claims.",
    )
    publish_parser.add_argument("epoch", type=_positive_int, help="Epoch number")
    publish_parser.add_argument("--root", type=str, default=None, help="Root hex read back from the chain")
    publish_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    publish_parser.set_defaults(func=epochs.publish_cmd)

    # --- epochs command ---
    epochs_parser = subparsers.add_parser("epochs", help="List committed epochs")
    epochs_parser.add_argument(
        "--unpublished",
        action="store_true",
        default=False,
        help="Only epochs whose root is not yet on-chain",
    )
    epochs_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    epochs_parser.set_defaults(func=epochs.list_cmd)

    # --- proof command ---
    proof_parser = subparsers.add_parser("proof", help="Export a user's proof bundle")
    proof_parser.add_argument("user_id", type=str, help="User id")
    proof_parser.add_argument("epoch", type=_positive_int, help="Epoch number")
    proof_parser.add_argument("--out", "-o", type=str, default=None, help="Output file (default: stdout)")
    proof_parser.set_defaults(func=claims.proof_cmd)

    # --- verify-proof command ---
    verify_parser = subparsers.add_parser(
        "verify-proof",
        help="Verify a proof bundle offline",
        description="Recompute the leaf and fold the proof exactly as the claim program does.",
    )
    verify_parser.add_argument("proof_path", type=str, help="Path to a proof bundle JSON file")
    verify_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    verify_parser.set_defaults(func=claims.verify_proof_cmd)

    # --- sweep command ---
    sweep_parser = subparsers.add_parser("sweep", help="Revert stale PROCESSING claims")
    sweep_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    sweep_parser.set_defaults(func=claims.sweep_cmd)

    # --- export command ---
    export_parser = subparsers.add_parser("export", help="Export claim history as CSV")
    export_parser.add_argument("--user", type=str, default=None, help="Only this user's claims")
    export_parser.add_argument("--out", "-o", type=str, default=None, help="Output file (default: stdout)")
    export_parser.set_defaults(func=claims.export_cmd)

    # --- odds command ---
    odds_parser = subparsers.add_parser("odds", help="Raffle win probability")
    odds_parser.add_argument("--total", type=int, required=True, help="Total tickets in the draw")
    group = odds_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--tickets", type=int, default=None, help="User's tickets")
    group.add_argument("--credits", type=int, default=None, help="Credits spent (converted to tickets)")
    odds_parser.add_argument("--pool", type=int, default=0, help="Prize pool to split")
    odds_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    odds_parser.set_defaults(func=raffle.odds_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage CLI configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show current configuration (secrets redacted)",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="rewards.json",
        help="Path for config file (default: rewards.json)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (REWARDS_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        config = args.cli_config
        config_dict = config.runtime.to_dict(redact=True)
        config_dict["cli"] = {"log_level": config.log_level, "log_file": config.log_file}
        print(json.dumps(config_dict, indent=2))
        return EXIT_SUCCESS

    print("Usage: rewards config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    try:
        config = load_config(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=config.log_file)

    args.cli_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
