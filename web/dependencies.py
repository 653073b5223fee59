"""Shared dependencies for RedSalud-Bot web application.

The orchestrator and the driver options live on ``app.state`` so tests can
build an app around a fake browser.
"""

from typing import Any, Dict

from fastapi import Request

from src.services.booking.interactive_orchestrator import InteractiveOrchestrator
from src.utils.error_capture import ErrorCapture
from src.utils.error_capture import get_error_capture as _global_error_capture


def get_orchestrator(request: Request) -> InteractiveOrchestrator:
    """Return the application's conversational orchestrator."""
    return request.app.state.orchestrator


def get_driver_options(request: Request) -> Dict[str, Any]:
    """Keyword arguments passed to every SessionDriver built by a route."""
    return request.app.state.driver_options


def get_error_capture(request: Request) -> ErrorCapture:
    """Return the error capture instance used by the drivers."""
    return request.app.state.driver_options.get("error_capture") or _global_error_capture()
