"""Health check routes for RedSalud-Bot web application."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from src.services.booking.interactive_orchestrator import InteractiveOrchestrator
from web.dependencies import get_orchestrator

router = APIRouter(tags=["health"])


def get_version() -> str:
    """
    Get application version from centralized source.

    Returns:
        Version string
    """
    from src import __version__

    return __version__


@router.get("/health")
async def health_check(
    request: Request,
    orchestrator: InteractiveOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring and container orchestration.

    Returns:
        Health status with basic service information
    """
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "version": get_version(),
        "environment": settings.env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_conversations": len(orchestrator.store),
    }
