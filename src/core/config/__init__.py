"""Configuration management module."""

from .settings import BotSettings, TimingSettings, get_settings, reset_settings

__all__ = ["BotSettings", "TimingSettings", "get_settings", "reset_settings"]
