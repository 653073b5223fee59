"""Portal selector catalogue with YAML overrides."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from src.constants import DEFAULT_SELECTORS
from src.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base; nested dicts merge, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SelectorManager:
    """Manage CSS selectors from built-in defaults and an external YAML file."""

    def __init__(self, selectors_file: Optional[str] = "config/selectors.yaml"):
        """
        Initialize selector manager.

        Args:
            selectors_file: Path to selectors YAML file; None uses defaults only
        """
        self.selectors_file = Path(selectors_file) if selectors_file else None
        self._selectors: Dict[str, Any] = {}
        self._load_selectors()

    def _load_selectors(self) -> None:
        """Load selectors, overlaying the YAML file on the defaults."""
        self._selectors = copy.deepcopy(DEFAULT_SELECTORS)

        if self.selectors_file is None:
            return
        if not self.selectors_file.exists():
            logger.info(f"Selectors file not found: {self.selectors_file}, using defaults")
            return

        try:
            with open(self.selectors_file, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid selectors file {self.selectors_file}: {e}",
                details={"path": str(self.selectors_file)},
            ) from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Selectors file {self.selectors_file} must contain a mapping",
                details={"path": str(self.selectors_file)},
            )

        self._selectors = _deep_merge(self._selectors, loaded)
        logger.info(f"Selectors loaded (version: {self._selectors.get('version', 'unknown')})")

    def _lookup(self, path: str) -> Any:
        value: Any = self._selectors
        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    def get(self, path: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get primary selector by dot-notation path.

        Args:
            path: Dot-separated path (e.g., "identify.document_number_input")
            default: Default value if not found

        Returns:
            Selector string or default
        """
        value = self._lookup(path)
        if isinstance(value, dict):
            value = value.get("primary")
        if isinstance(value, str):
            return value
        logger.warning(f"Selector not found: {path}, using default: {default}")
        return default

    def get_fallbacks(self, path: str) -> List[str]:
        """
        Get fallback selectors for a given path.

        Args:
            path: Dot-separated path

        Returns:
            List of fallback selectors (without primary)
        """
        value = self._lookup(path)
        if not isinstance(value, dict) or "fallbacks" not in value:
            return []
        fallbacks = value["fallbacks"]
        if isinstance(fallbacks, list):
            return [f for f in fallbacks if isinstance(f, str)]
        return [fallbacks] if isinstance(fallbacks, str) else []

    def get_with_fallback(self, path: str) -> List[str]:
        """
        Get selector with fallback options, primary first.

        Args:
            path: Dot-separated path

        Returns:
            List of selectors to try
        """
        primary = self.get(path)
        selectors = [primary] if primary else []
        for fallback in self.get_fallbacks(path):
            if fallback not in selectors:
                selectors.append(fallback)
        return selectors

    def reload(self) -> None:
        """Reload selectors from file."""
        self._load_selectors()
        logger.info("Selectors reloaded")


# Global instance
_selector_manager: Optional[SelectorManager] = None


def get_selector_manager(selectors_file: Optional[str] = None) -> SelectorManager:
    """
    Get global selector manager instance.

    Args:
        selectors_file: Path used on first creation (defaults to settings)

    Returns:
        SelectorManager singleton
    """
    global _selector_manager
    if _selector_manager is None:
        if selectors_file is None:
            from src.core.config.settings import get_settings

            selectors_file = get_settings().selectors_file
        _selector_manager = SelectorManager(selectors_file)
    return _selector_manager


def reset_selector_manager() -> None:
    """Reset selector manager singleton (useful for testing)."""
    global _selector_manager
    _selector_manager = None
