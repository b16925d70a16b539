"""FastAPI routers package."""

from . import bookings, cron, health, metrics, tours, waitlist, webhooks

__all__ = [
    "bookings",
    "cron",
    "health",
    "metrics",
    "tours",
    "waitlist",
    "webhooks",
]
