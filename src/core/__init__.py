"""Core infrastructure module."""

from .enums import BookingStatus, ChatIntent, Stage, UnavailableReason
from .exceptions import (
    ActionRejectedError,
    AmbiguousOutcomeError,
    BookingBotError,
    ConfigurationError,
    ElementNotFoundError,
    PreconditionTimeoutError,
    StageError,
    UpstreamNavigationError,
    ValidationError,
)
from .logger import correlation_id_ctx, setup_structured_logging

__all__ = [
    "setup_structured_logging",
    "correlation_id_ctx",
    # Enums
    "BookingStatus",
    "ChatIntent",
    "Stage",
    "UnavailableReason",
    # Exceptions
    "BookingBotError",
    "StageError",
    "ElementNotFoundError",
    "PreconditionTimeoutError",
    "ActionRejectedError",
    "AmbiguousOutcomeError",
    "UpstreamNavigationError",
    "ConfigurationError",
    "ValidationError",
]
