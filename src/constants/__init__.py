"""Unified constants and configuration values for RedSalud-Bot.

All classes and constants can be imported directly from this package:
    from src.constants import Timeouts, Delays, PortalLabels, etc.
"""

# Error capture config
from .error_capture import ErrorCaptureConfig

# Logging
from .logging import LogEmoji

# Portal integration surface
from .portal import (
    DATE_BOILERPLATE_MARKERS,
    DATE_LABEL_MAX_LENGTH,
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_SELECTORS,
    DEFAULT_SERVICE,
    NO_AVAILABILITY_MARKERS,
    NO_SLOTS_MARKERS,
    OUTCOME_ERROR_KEYWORDS,
    OUTCOME_SUCCESS_KEYWORDS,
    PORTAL_URL,
    SLOT_EXCLUSION_PATTERNS,
    TEXT_FALLBACK_SCOPE,
    TIME_PATTERN,
    PortalLabels,
)

# Timing-related
from .timing import (
    Delays,
    Intervals,
    Retries,
    Timeouts,
)

__all__ = [
    # Timing
    "Timeouts",
    "Intervals",
    "Retries",
    "Delays",
    # Portal
    "PORTAL_URL",
    "DEFAULT_DOCUMENT_TYPE",
    "DEFAULT_SERVICE",
    "DEFAULT_SELECTORS",
    "TEXT_FALLBACK_SCOPE",
    "PortalLabels",
    "TIME_PATTERN",
    "SLOT_EXCLUSION_PATTERNS",
    "NO_SLOTS_MARKERS",
    "DATE_BOILERPLATE_MARKERS",
    "DATE_LABEL_MAX_LENGTH",
    "NO_AVAILABILITY_MARKERS",
    "OUTCOME_SUCCESS_KEYWORDS",
    "OUTCOME_ERROR_KEYWORDS",
    # Logging
    "LogEmoji",
    # Error capture
    "ErrorCaptureConfig",
]
