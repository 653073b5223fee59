"""Element location and activation against the portal DOM.

Structural selectors are tried first, in the order given; a text search over a
generic clickable scope is the last resort. An element qualifies when it is
visible and, if a target text is given, its inner text matches it.
"""

from typing import Awaitable, Callable, List, Optional, Sequence

from loguru import logger
from playwright.async_api import ElementHandle
from playwright.async_api import Error as PlaywrightError

from src.constants import TEXT_FALLBACK_SCOPE, Timeouts

from ...core.exceptions import ElementNotFoundError
from .text_matcher import match_score, matches, normalize

CLOSEST_JS = "(el, selector) => el.closest(selector)"
CURSOR_JS = "(el) => window.getComputedStyle(el).cursor"
FORCE_VALUE_JS = """
(el, value) => {
    const proto = Object.getPrototypeOf(el);
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(el, value);
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
}
"""

MAX_DIAGNOSTIC_LABELS = 20
MAX_LABEL_LENGTH = 80


def _scope_selectors(text_scope: Optional[str]) -> List[str]:
    scope = text_scope or TEXT_FALLBACK_SCOPE
    return [part.strip() for part in scope.split(",") if part.strip()]


async def read_text(element: ElementHandle) -> str:
    """Inner text of an element, empty if it cannot be read."""
    try:
        return (await element.inner_text()) or ""
    except PlaywrightError:
        return ""


async def _qualifies(element: ElementHandle, text: Optional[str]) -> bool:
    try:
        if not await element.is_visible():
            return False
    except PlaywrightError:
        return False
    if text is None:
        return True
    return matches(await read_text(element), text)


async def _scan(root, selector: str, text: Optional[str], first_only: bool) -> List[ElementHandle]:
    try:
        candidates = await root.query_selector_all(selector)
    except PlaywrightError as e:
        logger.debug(f"Selector '{selector}' could not be evaluated: {e}")
        return []

    found: List[ElementHandle] = []
    for element in candidates:
        if await _qualifies(element, text):
            found.append(element)
            if first_only:
                break
    return found


async def find_all(
    root,
    selectors: Sequence[str] = (),
    text: Optional[str] = None,
    text_scope: Optional[str] = None,
    text_fallback: bool = True,
) -> List[ElementHandle]:
    """
    Return every qualifying element of the first strategy that yields any.

    Args:
        root: Page or element to search under
        selectors: Structural selectors, tried in order
        text: Optional label the element's text must match
        text_scope: Clickable scope for the text fallback
        text_fallback: Whether to run the text fallback at all

    Returns:
        Qualifying elements in document order (empty on exhaustion)
    """
    for selector in selectors:
        found = await _scan(root, selector, text, first_only=False)
        if found:
            return found

    if text is not None and text_fallback:
        for selector in _scope_selectors(text_scope):
            found = await _scan(root, selector, text, first_only=False)
            if found:
                return found

    return []


async def find(
    root,
    selectors: Sequence[str] = (),
    text: Optional[str] = None,
    text_scope: Optional[str] = None,
    text_fallback: bool = True,
) -> Optional[ElementHandle]:
    """
    Return the first qualifying element, or None.

    Args:
        root: Page or element to search under
        selectors: Structural selectors, tried in order
        text: Optional label the element's text must match
        text_scope: Clickable scope for the text fallback
        text_fallback: Whether to run the text fallback at all

    Returns:
        First element in document order under the first matching strategy
    """
    for selector in selectors:
        found = await _scan(root, selector, text, first_only=True)
        if found:
            return found[0]

    if text is not None and text_fallback:
        for selector in _scope_selectors(text_scope):
            found = await _scan(root, selector, text, first_only=True)
            if found:
                logger.debug(f"Text fallback matched '{text}' via '{selector}'")
                return found[0]

    return None


async def visible_labels(root, selectors: Sequence[str]) -> List[str]:
    """
    Collect the visible labels under the given selectors, for diagnostics.

    Args:
        root: Page or element to search under
        selectors: Selectors whose elements should be listed

    Returns:
        Distinct non-empty labels, truncated
    """
    labels: List[str] = []
    seen = set()
    for selector in selectors:
        for element in await _scan(root, selector, None, first_only=False):
            label = " ".join((await read_text(element)).split())[:MAX_LABEL_LENGTH]
            key = normalize(label)
            if key and key not in seen:
                seen.add(key)
                labels.append(label)
            if len(labels) >= MAX_DIAGNOSTIC_LABELS:
                return labels
    return labels


async def require(
    root,
    selectors: Sequence[str] = (),
    text: Optional[str] = None,
    target: Optional[str] = None,
    stage: Optional[str] = None,
    text_scope: Optional[str] = None,
    text_fallback: bool = True,
) -> ElementHandle:
    """
    Like find(), but raise ElementNotFoundError on exhaustion.

    Raises:
        ElementNotFoundError: Carries the tried selectors and observed labels
    """
    element = await find(root, selectors, text, text_scope, text_fallback)
    if element is not None:
        return element

    tried = list(selectors)
    if text is not None and text_fallback:
        tried.append(f"text={text!r}")
    diagnostics = await visible_labels(root, list(selectors) or _scope_selectors(text_scope)[:2])
    raise ElementNotFoundError(
        target=target or text or (selectors[0] if selectors else "element"),
        tried_selectors=tried,
        stage=stage,
        diagnostics=diagnostics,
    )


async def closest(element: ElementHandle, selector: str) -> Optional[ElementHandle]:
    """Return the nearest ancestor-or-self matching selector, or None."""
    try:
        handle = await element.evaluate_handle(CLOSEST_JS, selector)
    except PlaywrightError:
        return None
    return handle.as_element()


async def cursor_of(element: ElementHandle) -> str:
    """Computed CSS cursor of an element."""
    try:
        return str(await element.evaluate(CURSOR_JS) or "")
    except PlaywrightError:
        return ""


async def type_into(
    element: ElementHandle, text: str, clear: bool = True, delay_ms: int = 0
) -> None:
    """
    Type text into an input the way a user would.

    Args:
        element: Input element
        text: Text to type
        clear: Select-all and delete the current value first
        delay_ms: Per-key typing delay in milliseconds
    """
    await element.click()
    if clear:
        await element.press("Control+A")
        await element.press("Backspace")
    await element.type(text, delay=delay_ms)


async def force_value(element: ElementHandle, value: str) -> None:
    """Set an input value through the native setter and fire input/change."""
    await element.evaluate(FORCE_VALUE_JS, value)


async def _click(element: ElementHandle) -> None:
    await element.click(timeout=Timeouts.ACTIVATE_CLICK)


async def _dispatch(element: ElementHandle) -> None:
    await element.dispatch_event("click")


async def _pointer(element: ElementHandle) -> None:
    await element.dispatch_event("pointerdown")
    await element.dispatch_event("pointerup")
    await element.dispatch_event("click")


ACTIVATION_STRATEGIES = (
    ("click", _click),
    ("dispatch", _dispatch),
    ("pointer", _pointer),
)


async def activate(
    element: ElementHandle,
    confirm: Optional[Callable[[], Awaitable[bool]]] = None,
) -> Optional[str]:
    """
    Activate a control, trying dispatch strategies in order until one works.

    A strategy succeeds when it does not raise and, if confirm is given,
    confirm() returns True afterwards. Later strategies are not fired once one
    has succeeded.

    Args:
        element: Control to activate
        confirm: Optional async predicate observing the expected effect

    Returns:
        Name of the strategy that succeeded, or None if all failed
    """
    for name, strategy in ACTIVATION_STRATEGIES:
        try:
            await strategy(element)
        except PlaywrightError as e:
            logger.debug(f"Activation strategy '{name}' raised: {e}")
            continue

        if confirm is None or await confirm():
            logger.debug(f"Activated element via '{name}'")
            return name
        logger.debug(f"Activation strategy '{name}' had no observable effect")

    return None


async def best_match(
    root,
    selectors: Sequence[str],
    text: str,
    text_scope: Optional[str] = None,
    text_fallback: bool = True,
) -> Optional[ElementHandle]:
    """
    Among qualifying elements, prefer an exact label match over a containment one.

    Ties keep document order.
    """
    candidates = await find_all(root, selectors, text, text_scope, text_fallback)
    best: Optional[ElementHandle] = None
    best_score = 0
    for element in candidates:
        score = match_score(await read_text(element), text)
        if score > best_score:
            best, best_score = element, score
    return best


async def body_text(page) -> str:
    """Visible text of the whole page, empty if it cannot be read."""
    try:
        return await page.inner_text("body")
    except PlaywrightError:
        return ""
