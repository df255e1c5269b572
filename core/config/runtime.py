"""
Runtime Configuration

Central configuration for storage, epoch building, claims, referrals,
raffle odds, settlement verification and the HTTP API.
"""

from __future__ import annotations

import copy
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


@dataclass
class StorageConfig:
    """Database connection for the epoch/claim store."""
    url: str = "sqlite:///rewards.db"
    echo: bool = False


@dataclass
class EpochsConfig:
    """Leaf schema version and byte layout for newly built epochs."""
    leaf_version: int = 2
    layout: str = "canonical"


@dataclass
class ClaimsConfig:
    """Claim lifecycle settings."""
    stale_after_minutes: int = 30


@dataclass
class ReferralsConfig:
    """Referral tiers in basis points, nearest referrer first."""
    tier_bps: list[int] = field(default_factory=lambda: [1000])
    budget_bps: Optional[int] = None
    require_wallet: bool = False


@dataclass
class RaffleConfig:
    prize_count: int = 3
    ticket_price: int = 1000
    split_bps: list[int] = field(default_factory=lambda: [5000, 3000, 2000])


@dataclass
class SettlementConfig:
    """Solana JSON-RPC used to verify settlement signatures (disabled when unset)."""
    rpc_url: Optional[str] = None
    program_id: Optional[str] = None
    commitment: str = "confirmed"
    timeout: float = 15.0


@dataclass
class ApiConfig:
    """Shared secrets for scheduler and operator endpoints."""
    cron_secret: Optional[str] = None
    admin_secret: Optional[str] = None
    log_level: str = "INFO"


_SECTIONS = {
    "storage": StorageConfig,
    "epochs": EpochsConfig,
    "claims": ClaimsConfig,
    "referrals": ReferralsConfig,
    "raffle": RaffleConfig,
    "settlement": SettlementConfig,
    "api": ApiConfig,
}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the reward engine.

    Can be loaded from:
    - Environment variables
    - JSON or YAML file
    - Programmatic construction
    """
    storage: StorageConfig = field(default_factory=StorageConfig)
    epochs: EpochsConfig = field(default_factory=EpochsConfig)
    claims: ClaimsConfig = field(default_factory=ClaimsConfig)
    referrals: ReferralsConfig = field(default_factory=ReferralsConfig)
    raffle: RaffleConfig = field(default_factory=RaffleConfig)
    settlement: SettlementConfig = field(default_factory=SettlementConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - REWARDS_DATABASE_URL: SQLAlchemy database URL
        - REWARDS_LEAF_VERSION: Leaf schema version (1 or 2)
        - REWARDS_LEAF_LAYOUT: Leaf byte layout (canonical or anchor)
        - REWARDS_STALE_AFTER_MINUTES: Stale claim threshold
        - REWARDS_REFERRAL_TIER_BPS: Comma-separated tier bps (e.g. "1000,300,100")
        - REWARDS_REFERRAL_BUDGET_BPS: Referral budget relative to base rewards
        - REWARDS_REFERRAL_REQUIRE_WALLET: Skip referrers without a wallet
        - REWARDS_SOLANA_RPC_URL: RPC endpoint for settlement checks
        - REWARDS_CLAIM_PROGRAM_ID: Claim program address
        - REWARDS_CRON_SECRET: Secret for the stale sweep endpoint
        - REWARDS_ADMIN_SECRET: Secret for operator endpoints
        - REWARDS_LOG_LEVEL: Log level for the API
        """
        overrides: dict[str, Any] = {}

        if os.getenv("REWARDS_DATABASE_URL"):
            overrides.setdefault("storage", {})["url"] = os.getenv("REWARDS_DATABASE_URL")

        if os.getenv("REWARDS_LEAF_VERSION"):
            overrides.setdefault("epochs", {})["leaf_version"] = int(os.getenv("REWARDS_LEAF_VERSION"))
        if os.getenv("REWARDS_LEAF_LAYOUT"):
            overrides.setdefault("epochs", {})["layout"] = os.getenv("REWARDS_LEAF_LAYOUT")

        if os.getenv("REWARDS_STALE_AFTER_MINUTES"):
            overrides.setdefault("claims", {})["stale_after_minutes"] = int(
                os.getenv("REWARDS_STALE_AFTER_MINUTES")
            )

        if os.getenv("REWARDS_REFERRAL_TIER_BPS"):
            overrides.setdefault("referrals", {})["tier_bps"] = [
                int(part) for part in os.getenv("REWARDS_REFERRAL_TIER_BPS").split(",") if part.strip()
            ]
        if os.getenv("REWARDS_REFERRAL_BUDGET_BPS"):
            overrides.setdefault("referrals", {})["budget_bps"] = int(
                os.getenv("REWARDS_REFERRAL_BUDGET_BPS")
            )
        if os.getenv("REWARDS_REFERRAL_REQUIRE_WALLET"):
            overrides.setdefault("referrals", {})["require_wallet"] = _env_bool(
                os.getenv("REWARDS_REFERRAL_REQUIRE_WALLET")
            )

        if os.getenv("REWARDS_SOLANA_RPC_URL"):
            overrides.setdefault("settlement", {})["rpc_url"] = os.getenv("REWARDS_SOLANA_RPC_URL")
        if os.getenv("REWARDS_CLAIM_PROGRAM_ID"):
            overrides.setdefault("settlement", {})["program_id"] = os.getenv("REWARDS_CLAIM_PROGRAM_ID")

        if os.getenv("REWARDS_CRON_SECRET"):
            overrides.setdefault("api", {})["cron_secret"] = os.getenv("REWARDS_CRON_SECRET")
        if os.getenv("REWARDS_ADMIN_SECRET"):
            overrides.setdefault("api", {})["admin_secret"] = os.getenv("REWARDS_ADMIN_SECRET")
        if os.getenv("REWARDS_LOG_LEVEL"):
            overrides.setdefault("api", {})["log_level"] = os.getenv("REWARDS_LOG_LEVEL")

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Defaults plus environment overrides."""
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """
        Load configuration from a dictionary (supports partial data).

        Unknown keys inside a section raise TypeError.
        """
        sections = {}
        for name, section_cls in _SECTIONS.items():
            section_data = data.get(name) or {}
            sections[name] = section_cls(**section_data)
        return cls(**sections, extra=data.get("extra", {}))

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section_name, values in overrides.items():
            section = getattr(new_config, section_name)
            for key, value in values.items():
                setattr(section, key, value)
        return new_config

    def to_dict(self, redact: bool = False) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        data = asdict(self)
        if redact:
            for key in ("cron_secret", "admin_secret"):
                if data["api"].get(key):
                    data["api"][key] = "***"
        return data

