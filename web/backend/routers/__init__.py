"""API route handlers."""

from .events import router as events_router
