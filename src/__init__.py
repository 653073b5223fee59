"""RedSalud-Bot - Automated RedSalud appointment booking agent."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

# Application version (SemVer)
__version__ = "1.0.0"
__license__ = "MIT"

if TYPE_CHECKING:
    from .core.config.settings import get_settings as get_settings
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .services.booking.booking_agent import confirm_booking as confirm_booking
    from .services.booking.booking_agent import start_booking as start_booking
    from .services.booking.interactive_orchestrator import (
        InteractiveOrchestrator as InteractiveOrchestrator,
    )
    from .services.booking.session_driver import SessionDriver as SessionDriver

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    # Core
    "get_settings": ("src.core.config.settings", "get_settings"),
    "setup_structured_logging": ("src.core.logger", "setup_structured_logging"),
    # Booking
    "SessionDriver": ("src.services.booking.session_driver", "SessionDriver"),
    "InteractiveOrchestrator": (
        "src.services.booking.interactive_orchestrator",
        "InteractiveOrchestrator",
    ),
    "start_booking": ("src.services.booking.booking_agent", "start_booking"),
    "confirm_booking": ("src.services.booking.booking_agent", "confirm_booking"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        # Cache in module globals to avoid repeated imports
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
