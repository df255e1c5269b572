"""API route handlers."""

from api.routes import claims, cron, epochs, health, raffle

__all__ = ["claims", "cron", "epochs", "health", "raffle"]
