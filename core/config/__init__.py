"""
Runtime Configuration Module

Provides configuration loading and management for the reward engine.
"""

from .runtime import (
    ApiConfig,
    ClaimsConfig,
    EpochsConfig,
    RaffleConfig,
    ReferralsConfig,
    RuntimeConfig,
    SettlementConfig,
    StorageConfig,
)

__all__ = [
    "ApiConfig",
    "ClaimsConfig",
    "EpochsConfig",
    "RaffleConfig",
    "ReferralsConfig",
    "RuntimeConfig",
    "SettlementConfig",
    "StorageConfig",
]
