"""Routes package for RedSalud-Bot web application."""

from .booking import router as booking_router
from .chat import router as chat_router
from .health import router as health_router

__all__ = [
    "booking_router",
    "chat_router",
    "health_router",
]
