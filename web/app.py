"""FastAPI application for the RedSalud booking agent."""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException

from src import __version__
from src.core.config.settings import BotSettings, get_settings
from src.core.exceptions import BookingBotError
from src.services.booking.conversation_store import ConversationStore
from src.services.booking.interactive_orchestrator import InteractiveOrchestrator
from web.cors import validate_cors_origins
from web.exception_handlers import (
    booking_error_handler,
    http_exception_handler,
    validation_exception_handler,
)
from web.middleware import CorrelationMiddleware
from web.routes import booking_router, chat_router, health_router


async def _purge_conversations(store: ConversationStore, interval: float) -> None:
    """Drop expired conversations every interval seconds."""
    while True:
        await asyncio.sleep(interval)
        dropped = store.purge_expired()
        if dropped:
            logger.debug(f"Purged {dropped} expired conversation(s)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Starts the conversation purge task and cancels it on shutdown.
    """
    logger.info("FastAPI application starting up...")
    orchestrator: InteractiveOrchestrator = app.state.orchestrator
    purge_task = asyncio.create_task(
        _purge_conversations(orchestrator.store, app.state.settings.conversation_purge_interval)
    )

    yield

    logger.info("FastAPI application shutting down...")
    purge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await purge_task


def create_app(
    settings: Optional[BotSettings] = None,
    orchestrator: Optional[InteractiveOrchestrator] = None,
    driver_options: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (defaults to the global settings)
        orchestrator: Conversational orchestrator (built from settings if omitted)
        driver_options: Extra keyword arguments for every SessionDriver
            (browser_factory, error_capture, ...)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    driver_options = dict(driver_options or {})
    driver_options.setdefault("settings", settings)

    app = FastAPI(
        title="RedSalud-Bot API",
        description="Availability search and appointment booking on the RedSalud portal",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "booking", "description": "One-shot availability search and booking"},
            {"name": "chat", "description": "Turn-by-turn booking conversation"},
            {"name": "health", "description": "Service health and monitoring"},
        ],
    )

    app.state.settings = settings
    app.state.driver_options = driver_options
    orchestrator_options = {k: v for k, v in driver_options.items() if k != "settings"}
    app.state.orchestrator = orchestrator or InteractiveOrchestrator(
        settings=settings, **orchestrator_options
    )

    # Exception handlers (RFC 7807)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(BookingBotError, booking_error_handler)

    # Middleware
    app.add_middleware(CorrelationMiddleware)

    allowed_origins = validate_cors_origins(settings.cors_allowed_origins, settings.env)
    if not allowed_origins and settings.is_production():
        logger.warning("No CORS origins configured; browser clients will be rejected")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Accept-Language", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    app.include_router(health_router)  # /health
    app.include_router(booking_router)  # /api/booking/*
    app.include_router(chat_router)  # /api/chat/*

    return app
