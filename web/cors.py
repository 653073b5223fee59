"""CORS validation utilities for FastAPI web application."""

import re
from typing import List

from loguru import logger

# Comprehensive localhost detection pattern
_LOCALHOST_PATTERN = re.compile(
    r"^https?://"
    r"(localhost(\.|:|/|$)|127\.0\.0\.1|(\[::1\]|::1)|0\.0\.0\.0)"
    r"(:\d+)?"
    r"(/.*)?$",
    re.IGNORECASE,
)

_RELAXED_ENVIRONMENTS = {"development", "dev", "testing", "test", "local"}


def _is_localhost_origin(origin: str) -> bool:
    """Check if origin is a localhost variant (including IPv6)."""
    if "://" in origin:
        hostname = origin.split("://", 1)[1].split(":")[0].split("/")[0].lower()
        if hostname.startswith("localhost.") or hostname.endswith(".localhost"):
            return True
    return bool(_LOCALHOST_PATTERN.match(origin))


def validate_cors_origins(origins_str: str, env: str) -> List[str]:
    """
    Parse CORS origins, blocking wildcard and localhost in production.

    Args:
        origins_str: Comma-separated list of allowed origins
        env: Current environment name

    Returns:
        List of validated origin strings

    Raises:
        ValueError: If wildcard is used in production environment
    """
    origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]

    if env == "production" and "*" in origins:
        raise ValueError("Wildcard CORS origin ('*') not allowed in production")

    if env not in _RELAXED_ENVIRONMENTS:
        invalid = [o for o in origins if o == "*" or _is_localhost_origin(o)]
        if invalid:
            logger.warning(f"Removing insecure CORS origins in production: {invalid}")
            origins = [o for o in origins if o not in invalid]
            if not origins:
                logger.error("All CORS origins were insecure and removed. Using empty list.")

    return origins
