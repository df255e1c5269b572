"""
Module 09D - Rewards API (FastAPI)

HTTP API for the reward epoch and claim engine:
- GET  /claims/{epoch}/proof - Merkle proof for the caller's leaf
- POST /claims/{epoch}/begin, /confirm - Claim lifecycle
- POST /admin/epochs/build, /publish - Operator epoch management
- POST /cron/claims/revert-stale - Stale claim sweep
- GET  /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
