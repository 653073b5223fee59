"""Business logic services module."""

import importlib as _importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .booking.interactive_orchestrator import (
        InteractiveOrchestrator as InteractiveOrchestrator,
    )
    from .booking.session_driver import SessionDriver as SessionDriver
    from .bot.browser_manager import BrowserManager as BrowserManager

_LAZY_MODULE_MAP = {
    "BrowserManager": ("src.services.bot.browser_manager", "BrowserManager"),
    "SessionDriver": ("src.services.booking.session_driver", "SessionDriver"),
    "InteractiveOrchestrator": (
        "src.services.booking.interactive_orchestrator",
        "InteractiveOrchestrator",
    ),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str):
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
