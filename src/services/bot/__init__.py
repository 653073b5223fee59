"""Browser lifecycle for portal automation."""

from .browser_manager import BrowserManager

__all__ = ["BrowserManager"]
