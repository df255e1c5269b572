"""
Module 09D - API Dependencies

Dependency injection for the API.
Provides the shared RewardEngine and caller authentication.
"""

from __future__ import annotations

import hmac
import json
import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, Header

from api.errors import UnauthorizedError
from core.config.runtime import RuntimeConfig
from core.engine import RewardEngine

logger = logging.getLogger(__name__)

_engine: Optional[RewardEngine] = None


def _load_runtime_config() -> RuntimeConfig:
    """Load RuntimeConfig from config file, then overlay environment variables.

    Search order for config file:
      1. ./rewards.json
      2. ./.rewards.json
      3. ~/.config/rewards/config.json

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    search_paths = [
        Path.cwd() / "rewards.json",
        Path.cwd() / ".rewards.json",
        Path.home() / ".config" / "rewards" / "config.json",
    ]

    config: RuntimeConfig | None = None

    for path in search_paths:
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                logger.info(f"Loaded config from {path}")
                config = RuntimeConfig.from_dict(data)
                break
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse {path}: {e}")

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


def get_engine() -> RewardEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = RewardEngine.from_config(_load_runtime_config())
    return _engine


def reset_engine() -> None:
    """Drop the cached engine so the next request reloads config."""
    global _engine
    if _engine is not None:
        _engine.store.dispose()
    _engine = None


def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authenticated user id, set by the fronting auth proxy."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Missing X-User-Id header")
    return x_user_id.strip()


def _check_secret(expected: Optional[str], presented: Optional[str], name: str) -> None:
    if not expected:
        # An unset secret disables the endpoint rather than opening it
        logger.warning(f"{name} secret not configured; rejecting request")
        raise UnauthorizedError()
    token = (presented or "").strip()
    if not hmac.compare_digest(token.encode(), expected.encode()):
        raise UnauthorizedError()


def require_cron_secret(
    x_cron_secret: Optional[str] = Header(default=None),
    engine: RewardEngine = Depends(get_engine),
) -> None:
    _check_secret(engine.config.api.cron_secret, x_cron_secret, "cron")


def require_admin_secret(
    x_admin_secret: Optional[str] = Header(default=None),
    engine: RewardEngine = Depends(get_engine),
) -> None:
    _check_secret(engine.config.api.admin_secret, x_admin_secret, "admin")
