"""Application settings with Pydantic validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import PORTAL_URL, Delays, ErrorCaptureConfig, Intervals, Retries, Timeouts


class TimingSettings(BaseModel):
    """
    Every stage timeout, poll interval and settle delay, in seconds.

    Settle delays stand in for reactive re-renders that are not observable from
    outside the page; they are tunables, not correctness guarantees. Override
    from the environment with the nested delimiter, e.g.
    ``TIMINGS__AVAILABILITY_TIMEOUT=30``.
    """

    # Bounded precondition waits
    identify_timeout: float = Field(default=Timeouts.IDENTIFY_PRECONDITION, ge=0)
    service_timeout: float = Field(default=Timeouts.SERVICE_PRECONDITION, ge=0)
    search_timeout: float = Field(default=Timeouts.SEARCH_PRECONDITION, ge=0)
    availability_timeout: float = Field(default=Timeouts.AVAILABILITY, ge=0)
    suggestion_timeout: float = Field(default=Timeouts.SUGGESTIONS, ge=0)
    search_enabled_timeout: float = Field(default=Timeouts.SEARCH_ENABLED, ge=0)
    terms_timeout: float = Field(default=Timeouts.TERMS, ge=0)
    submit_timeout: float = Field(default=Timeouts.SUBMIT_PRECONDITION, ge=0)
    outcome_timeout: float = Field(default=Timeouts.OUTCOME, ge=0)

    # Polling
    poll_interval: float = Field(default=Intervals.POLL, ge=0)
    continue_poll_interval: float = Field(default=Intervals.CONTINUE_POLL, ge=0)
    continue_poll_attempts: int = Field(default=Retries.CONTINUE_ENABLED_ATTEMPTS, ge=1)

    # Settle delays
    page_load_settle: float = Field(default=Delays.PAGE_LOAD, ge=0)
    dropdown_open_settle: float = Field(default=Delays.DROPDOWN_OPEN, ge=0)
    option_pick_settle: float = Field(default=Delays.OPTION_PICK, ge=0)
    document_typed_settle: float = Field(default=Delays.AFTER_DOCUMENT_TYPED, ge=0)
    after_continue_settle: float = Field(default=Delays.AFTER_CONTINUE, ge=0)
    service_cards_settle: float = Field(default=Delays.SERVICE_CARDS_RENDER, ge=0)
    after_service_settle: float = Field(default=Delays.AFTER_SERVICE, ge=0)
    search_form_settle: float = Field(default=Delays.SEARCH_FORM_RENDER, ge=0)
    after_suggestion_settle: float = Field(default=Delays.AFTER_SUGGESTION, ge=0)
    availability_settle: float = Field(default=Delays.AVAILABILITY_RENDER, ge=0)
    after_date_settle: float = Field(default=Delays.AFTER_DATE, ge=0)
    after_time_settle: float = Field(default=Delays.AFTER_TIME, ge=0)
    after_terms_settle: float = Field(default=Delays.AFTER_TERMS, ge=0)
    after_contact_settle: float = Field(default=Delays.AFTER_CONTACT, ge=0)
    after_click_settle: float = Field(default=Delays.AFTER_CLICK, ge=0)
    typing_delay_ms: int = Field(default=Delays.TYPING_KEY_MS, ge=0)


class BotSettings(BaseSettings):
    """Application settings with validation and environment variable support."""

    # Environment
    env: str = Field(
        default="production", description="Environment (production, development, testing)"
    )

    # Portal
    portal_url: str = Field(default=PORTAL_URL, description="Patient identification page URL")
    selectors_file: str = Field(
        default="config/selectors.yaml",
        description="YAML file overriding the built-in portal selectors",
    )

    # Browser
    headless: bool = Field(default=True, description="Run Chromium headless")
    browser_executable_path: Optional[str] = Field(
        default=None, description="Optional Chromium executable (e.g. on PaaS hosts)"
    )
    navigation_timeout_ms: int = Field(default=Timeouts.NAVIGATION, ge=1000)
    default_timeout_ms: int = Field(default=Timeouts.DEFAULT_ACTION, ge=1000)
    viewport_width: int = Field(default=1920, ge=320)
    viewport_height: int = Field(default=1080, ge=240)
    milestone_screenshots: bool = Field(
        default=True, description="Capture a screenshot after every completed stage"
    )

    # Availability payload caps
    max_dates: int = Field(default=5, ge=1, le=50)
    max_times: int = Field(default=10, ge=1, le=100)

    # Conversation store
    conversation_ttl_seconds: int = Field(default=1800, ge=1)
    conversation_max_entries: int = Field(default=1000, ge=1)
    conversation_purge_interval: int = Field(default=Intervals.CONVERSATION_PURGE, ge=1)

    # Error capture
    screenshots_dir: str = Field(default=ErrorCaptureConfig.SCREENSHOTS_DIR)
    error_capture_to_disk: bool = Field(default=False)
    error_capture_cleanup_days: int = Field(default=ErrorCaptureConfig.CLEANUP_DAYS, ge=1)

    # Web
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000, ge=1, le=65535)
    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated origins allowed to call the API",
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(default=True, description="Write the log file as JSON lines")

    timings: TimingSettings = Field(default_factory=TimingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env
    )

    @model_validator(mode="before")
    @classmethod
    def default_env_for_pytest(cls, data: Any) -> Any:
        """Auto-detect testing environment when running under pytest."""
        import sys

        if not isinstance(data, dict):
            return data

        if ("env" not in data or not data.get("env")) and "pytest" in sys.modules:
            data["env"] = "testing"

        return data

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["production", "development", "testing", "staging"]
        if v.lower() not in allowed:
            raise ValueError(f'ENV must be one of: {", ".join(allowed)}')
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of: {", ".join(allowed)}')
        return v_upper

    @field_validator("portal_url")
    @classmethod
    def validate_portal_url(cls, v: str) -> str:
        """Portal must be reached over http(s)."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("PORTAL_URL must start with http:// or https://")
        return v

    def is_development(self) -> bool:
        """
        Check if running in development mode.

        Returns:
            True if development environment
        """
        return self.env == "development"

    def is_production(self) -> bool:
        """
        Check if running in production mode.

        Returns:
            True if production environment
        """
        return self.env == "production"


# Singleton instance
_settings: Optional[BotSettings] = None


def get_settings() -> BotSettings:
    """
    Get application settings singleton.

    Returns:
        BotSettings instance

    Raises:
        ValidationError: If settings are invalid
    """
    global _settings
    if _settings is None:
        _settings = BotSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
