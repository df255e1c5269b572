"""
CLI command modules.
"""

from rewards_cli.commands import claims, epochs, raffle

__all__ = ["claims", "epochs", "raffle"]
