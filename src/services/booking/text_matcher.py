"""Accent- and case-insensitive label matching."""

import re
import unicodedata
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """
    Normalize a label for comparison.

    NFD-decomposes, drops combining marks, lowercases, trims and collapses
    whitespace runs. Idempotent.

    Args:
        text: Raw label (None is treated as empty)

    Returns:
        Normalized label
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def matches(candidate: Optional[str], target: Optional[str]) -> bool:
    """
    Check whether a visible label matches a requested value.

    True when the normalized strings are equal or either contains the other.
    An empty label never matches anything.

    Args:
        candidate: Label read from the page
        target: Value supplied by the caller

    Returns:
        True if the label matches
    """
    a = normalize(candidate)
    b = normalize(target)
    if not a or not b:
        return False
    return a == b or a in b or b in a


def contains_any(text: Optional[str], markers) -> bool:
    """Return True if the normalized text contains any of the (normalized) markers."""
    normalized = normalize(text)
    return any(marker in normalized for marker in markers)


def match_score(candidate: Optional[str], target: Optional[str]) -> int:
    """
    Rank how well a label matches: 2 for equality, 1 for containment, 0 otherwise.

    Used to prefer "Acepto" over "No acepto" when both match by containment.
    """
    a = normalize(candidate)
    b = normalize(target)
    if not a or not b:
        return 0
    if a == b:
        return 2
    return 1 if (a in b or b in a) else 0
