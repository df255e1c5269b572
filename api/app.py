"""
Module 09D - FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import json
import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import (
    APIError,
    api_error_handler,
    generic_error_handler,
    rewards_error_handler,
)
from api.routes import claims, cron, epochs, health, raffle
from core.schemas.errors import RewardsException


def _resolve_log_level() -> int:
    """Resolve log level from env var or rewards.json, defaulting to INFO."""
    raw = os.getenv("REWARDS_LOG_LEVEL")
    if raw is None:
        cfg_path = Path.cwd() / "rewards.json"
        if cfg_path.exists():
            try:
                with open(cfg_path) as f:
                    raw = json.load(f).get("api", {}).get("log_level")
            except (OSError, ValueError, AttributeError):
                raw = None
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Epoch Rewards API",
        description="""
HTTP API for weekly reward epochs and Merkle claims.

## Endpoints

- **GET /claims/{epoch}/proof** - Proof bundle for the caller's leaf
- **POST /claims/{epoch}/begin** - Start a claim (PENDING -> PROCESSING)
- **POST /claims/{epoch}/confirm** - Record settlement (-> CONFIRMED)
- **GET /claims/history.csv** - Claim history report
- **GET /raffle/odds** - Raffle win probability
- **POST /admin/epochs/build** - Commit a period's epoch
- **POST /admin/epochs/{epoch}/publish** - Mark the root as on-chain
- **POST /cron/claims/revert-stale** - Revert stuck claims
- **GET /health** - Health check

## Errors

Every error carries a machine-readable `code` and a `retryable` flag.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RewardsException, rewards_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.include_router(health.router)
    app.include_router(claims.router)
    app.include_router(epochs.router)
    app.include_router(epochs.admin_router)
    app.include_router(cron.router)
    app.include_router(raffle.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
