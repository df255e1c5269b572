"""
Module 09C - Rewards CLI

Command-line interface for operating reward epochs.

Usage:
    python -m rewards_cli build 2026-W03 --events events.json
    python -m rewards_cli publish 4 --root <hex>
    python -m rewards_cli proof user-1 4 --out proof.json
    python -m rewards_cli verify-proof proof.json
    python -m rewards_cli sweep
"""

__version__ = "0.1.0"
