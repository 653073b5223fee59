"""Selector management module for RedSalud-Bot."""

from src.selector.manager import SelectorManager, get_selector_manager, reset_selector_manager

__all__ = [
    "SelectorManager",
    "get_selector_manager",
    "reset_selector_manager",
]
