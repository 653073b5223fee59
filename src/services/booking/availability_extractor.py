"""Harvest bookable dates and times from the availability grid."""

from typing import List, Optional, Tuple

from loguru import logger
from playwright.async_api import ElementHandle, Page

from src.constants import (
    DATE_BOILERPLATE_MARKERS,
    DATE_LABEL_MAX_LENGTH,
    SLOT_EXCLUSION_PATTERNS,
    TIME_PATTERN,
    LogEmoji,
    PortalLabels,
)
from src.selector import SelectorManager, get_selector_manager

from ...models.booking import AvailabilityOptions
from .element_locator import find_all, read_text
from .text_matcher import contains_any, normalize


def slot_time(label: Optional[str]) -> Optional[str]:
    """
    Return the zero-padded HH:MM of a reserve-slot label, or None.

    A slot label carries the reserve verb and a time; aggregate counters such
    as "3 HORAS ESTE DIA" are rejected.

    Args:
        label: Button text

    Returns:
        "HH:MM" or None if the label is not a bookable slot
    """
    text = normalize(label)
    if PortalLabels.RESERVE_VERB not in text:
        return None
    if any(pattern.search(text) for pattern in SLOT_EXCLUSION_PATTERNS):
        return None
    match = TIME_PATTERN.search(text)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def minute_of_day(hhmm: str) -> int:
    """Minutes since midnight for an "HH:MM" string."""
    hour, minute = hhmm.split(":")
    return int(hour) * 60 + int(minute)


def is_date_label(text: str) -> bool:
    """Whether a date block's text looks like a date header rather than boilerplate."""
    if not text or len(text) > DATE_LABEL_MAX_LENGTH:
        return False
    if not any(ch.isdigit() for ch in text):
        return False
    return not contains_any(text, DATE_BOILERPLATE_MARKERS)


async def date_block_text(block: ElementHandle, text_selector: str = "p") -> str:
    """
    Text of a date block: its paragraphs joined, else its whole inner text.

    Args:
        block: Date container element
        text_selector: Selector of the label paragraphs

    Returns:
        Whitespace-collapsed label text
    """
    parts: List[str] = []
    for paragraph in await block.query_selector_all(text_selector):
        text = (await read_text(paragraph)).strip()
        if text:
            parts.append(text)
    text = " ".join(parts) if parts else await read_text(block)
    return " ".join(text.split())


async def _wraps_date_block(
    block: ElementHandle, block_selectors: List[str], text_selector: str
) -> bool:
    for selector in block_selectors:
        for inner in await block.query_selector_all(selector):
            if is_date_label(await date_block_text(inner, text_selector)):
                return True
    return False


async def date_blocks(
    page: Page, selectors: Optional[SelectorManager] = None
) -> List[Tuple[ElementHandle, str]]:
    """
    Innermost date blocks with their label text, in document order.

    Layout containers share the date block selector; one that wraps another
    date block is skipped so a combined label is never offered or clicked.

    Returns:
        List of (element, label) for blocks with a short, non-empty label
    """
    selectors = selectors or get_selector_manager()
    block_selectors = selectors.get_with_fallback("availability.date_block")
    text_selector = selectors.get("availability.date_text", "p") or "p"

    found: List[Tuple[ElementHandle, str]] = []
    for block in await find_all(page, block_selectors):
        text = await date_block_text(block, text_selector)
        if not text or len(text) > DATE_LABEL_MAX_LENGTH:
            continue
        if await _wraps_date_block(block, block_selectors, text_selector):
            continue
        found.append((block, text))
    return found


async def slot_buttons(page: Page, selectors: Optional[SelectorManager] = None):
    """
    Visible buttons whose label is a bookable slot, with their parsed times.

    Returns:
        List of (element, "HH:MM") in document order
    """
    selectors = selectors or get_selector_manager()
    found = []
    for button in await find_all(page, selectors.get_with_fallback("availability.slot_button")):
        hhmm = slot_time(await read_text(button))
        if hhmm:
            found.append((button, hhmm))
    return found


async def extract(
    page: Page,
    max_dates: int = 5,
    max_times: int = 10,
    selectors: Optional[SelectorManager] = None,
) -> AvailabilityOptions:
    """
    Extract the dates and times currently offered by the grid.

    Args:
        page: Page showing the availability grid
        max_dates: Cap on returned dates (document order)
        max_times: Cap on returned times (chronological order)
        selectors: Selector catalogue (defaults to the global one)

    Returns:
        AvailabilityOptions with deduplicated dates and sorted times
    """
    selectors = selectors or get_selector_manager()

    dates: List[str] = []
    seen_dates = set()
    for _, text in await date_blocks(page, selectors):
        key = normalize(text)
        if key in seen_dates or not is_date_label(text):
            continue
        seen_dates.add(key)
        dates.append(text)
        if len(dates) >= max_dates:
            break

    unique_times = {hhmm for _, hhmm in await slot_buttons(page, selectors)}
    times = sorted(unique_times, key=minute_of_day)[:max_times]

    logger.info(f"{LogEmoji.CALENDAR} Extracted {len(dates)} date(s) and {len(times)} time(s)")
    return AvailabilityOptions(dates=dates, times=times)
