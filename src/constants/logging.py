"""Logging-related constants."""

from typing import Final


class LogEmoji:
    """Emoji constants for consistent logging."""

    SUCCESS: Final[str] = "✅"
    ERROR: Final[str] = "❌"
    WARNING: Final[str] = "⚠️"
    START: Final[str] = "🚀"
    WAITING: Final[str] = "⏳"
    RETRY: Final[str] = "🔄"
    FOUND: Final[str] = "🎯"
    CALENDAR: Final[str] = "📅"
    CAMERA: Final[str] = "📸"
    BROWSER: Final[str] = "🌐"
    ALERT: Final[str] = "🚨"
    SEARCH: Final[str] = "🔍"
    CHAT: Final[str] = "💬"
