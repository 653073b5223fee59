"""Custom exception classes for RedSalud-Bot."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class BookingBotError(Exception):
    """Base exception for RedSalud-Bot."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize booking bot error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class StageError(BookingBotError):
    """Base class for failures raised while running one booking stage."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.stage = stage
        self.diagnostics = list(diagnostics or [])
        merged = dict(details or {})
        if stage:
            merged.setdefault("stage", stage)
        if self.diagnostics:
            merged.setdefault("diagnostics", self.diagnostics)
        super().__init__(message, recoverable, merged)


class ElementNotFoundError(StageError):
    """Locator exhausted all strategies - portal markup or labels may have changed."""

    def __init__(
        self,
        target: str,
        tried_selectors: Optional[List[str]] = None,
        stage: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
        message: Optional[str] = None,
    ):
        """
        Initialize element not found error.

        Args:
            target: Human-readable name of the element that was not found
            tried_selectors: Selector strings that were tried
            stage: Stage that was running
            diagnostics: Candidate labels observed on the page
            message: Optional override for the default message
        """
        self.target = target
        self.tried_selectors = tried_selectors or []
        if message is None:
            message = f"Element '{target}' not found."
            if self.tried_selectors:
                message += f" Tried: {', '.join(self.tried_selectors)}"
        super().__init__(
            message,
            stage=stage,
            diagnostics=diagnostics,
            recoverable=False,
            details={"target": target, "tried_selectors": self.tried_selectors},
        )


class PreconditionTimeoutError(StageError):
    """A stage's trigger UI never appeared within its bounded wait."""

    def __init__(
        self,
        stage: str,
        timeout: float,
        waiting_for: str = "precondition",
        diagnostics: Optional[List[str]] = None,
    ):
        self.timeout = timeout
        self.waiting_for = waiting_for
        super().__init__(
            f"Timed out after {timeout:g}s waiting for {waiting_for} in stage {stage}",
            stage=stage,
            diagnostics=diagnostics,
            recoverable=True,
            details={"timeout": timeout, "waiting_for": waiting_for},
        )


class ActionRejectedError(StageError):
    """Control found but disabled or unclickable beyond its retry budget."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
    ):
        super().__init__(message, stage=stage, diagnostics=diagnostics, recoverable=False)


class AmbiguousOutcomeError(StageError):
    """Post-submit page text matched neither success nor error keywords."""

    def __init__(
        self,
        message: str = "Reservation outcome could not be determined",
        stage: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
    ):
        super().__init__(message, stage=stage, diagnostics=diagnostics, recoverable=False)


class UpstreamNavigationError(StageError):
    """Initial navigation to the portal failed."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        message = f"Failed to load portal page {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message, stage="start", recoverable=True, details={"url": url})


# Configuration Errors
class ConfigurationError(BookingBotError):
    """Configuration error occurred."""

    def __init__(
        self,
        message: str = "Configuration error",
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class ValidationError(BookingBotError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", field: Optional[str] = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field that failed validation
        """
        self.field = field
        details = {"field": field} if field else {}
        super().__init__(message, recoverable=False, details=details)
