"""Timing-related constants (timeouts, intervals, delays)."""

from typing import Final


class Timeouts:
    """Timeout values - MILLISECONDS for Playwright, SECONDS noted separately."""

    # Playwright timeouts (milliseconds)
    NAVIGATION: Final[int] = 60_000
    DEFAULT_ACTION: Final[int] = 25_000
    ACTIVATE_CLICK: Final[int] = 3_000

    # Stage precondition waits (seconds)
    IDENTIFY_PRECONDITION: Final[float] = 15.0
    SERVICE_PRECONDITION: Final[float] = 10.0
    SEARCH_PRECONDITION: Final[float] = 15.0
    AVAILABILITY: Final[float] = 45.0
    SUGGESTIONS: Final[float] = 1.5
    SEARCH_ENABLED: Final[float] = 3.0
    TERMS: Final[float] = 6.0
    SUBMIT_PRECONDITION: Final[float] = 10.0
    OUTCOME: Final[float] = 15.0


class Intervals:
    """Polling interval values in SECONDS."""

    POLL: Final[float] = 0.5
    CONTINUE_POLL: Final[float] = 0.5
    CONVERSATION_PURGE: Final[int] = 300


class Retries:
    """Intra-stage retry budgets."""

    CONTINUE_ENABLED_ATTEMPTS: Final[int] = 20


class Delays:
    """Settle delays in SECONDS, applied after an action with no observable postcondition."""

    PAGE_LOAD: Final[float] = 2.0
    DROPDOWN_OPEN: Final[float] = 0.8
    OPTION_PICK: Final[float] = 1.0
    AFTER_DOCUMENT_TYPED: Final[float] = 0.5
    AFTER_CONTINUE: Final[float] = 3.0
    SERVICE_CARDS_RENDER: Final[float] = 1.5
    AFTER_SERVICE: Final[float] = 3.0
    SEARCH_FORM_RENDER: Final[float] = 1.5
    AFTER_SUGGESTION: Final[float] = 0.5
    AVAILABILITY_RENDER: Final[float] = 2.0
    AFTER_DATE: Final[float] = 2.0
    AFTER_TIME: Final[float] = 2.0
    AFTER_TERMS: Final[float] = 2.0
    AFTER_CONTACT: Final[float] = 1.0
    AFTER_CLICK: Final[float] = 0.3
    TYPING_KEY_MS: Final[int] = 50
