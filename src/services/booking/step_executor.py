"""Booking stage state machine.

Stages run strictly in order against one page. Each stage waits for its
trigger UI within a bounded window, performs one locate-and-act, sleeps a named
settle delay and, where the portal offers one, checks a postcondition.
"""

from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from loguru import logger
from playwright.async_api import ElementHandle, Page

from src.constants import (
    NO_AVAILABILITY_MARKERS,
    NO_SLOTS_MARKERS,
    OUTCOME_ERROR_KEYWORDS,
    OUTCOME_SUCCESS_KEYWORDS,
    TIME_PATTERN,
    LogEmoji,
    PortalLabels,
)
from src.core.config.settings import TimingSettings, get_settings
from src.selector import SelectorManager, get_selector_manager

from ...core.enums import Stage, UnavailableReason
from ...core.exceptions import (
    ActionRejectedError,
    AmbiguousOutcomeError,
    BookingBotError,
    ElementNotFoundError,
    PreconditionTimeoutError,
    ValidationError,
)
from ...models.booking import BookingRequest, StepOutcome
from ...utils.helpers import poll_until, settle
from ...utils.masking import mask_document_number, mask_email, mask_phone
from .availability_extractor import date_blocks, minute_of_day, slot_buttons
from .element_locator import (
    activate,
    best_match,
    body_text,
    closest,
    cursor_of,
    find,
    force_value,
    read_text,
    require,
    type_into,
    visible_labels,
)
from .text_matcher import contains_any, matches, normalize

StageHandler = Callable[[Page, BookingRequest], Awaitable[StepOutcome]]

SUBSTITUTED = "substituted"


def parse_time(value: Optional[str]) -> Optional[str]:
    """Normalize a requested time like "9:15" or "09:15 hrs" to "09:15"."""
    if not value:
        return None
    match = TIME_PATTERN.search(value)
    if not match:
        return None
    return f"{int(match.group(1)):02d}:{match.group(2)}"


class StepExecutor:
    """Runs individual booking stages against a portal page."""

    def __init__(
        self,
        timings: Optional[TimingSettings] = None,
        selectors: Optional[SelectorManager] = None,
    ):
        """
        Initialize step executor.

        Args:
            timings: Stage timeouts and settle delays (defaults to settings)
            selectors: Selector catalogue (defaults to the global one)
        """
        self.timings = timings or get_settings().timings
        self.selectors = selectors or get_selector_manager()
        self._handlers: Dict[Stage, StageHandler] = {
            Stage.IDENTIFY_PATIENT: self.identify_patient,
            Stage.SELECT_SERVICE: self.select_service,
            Stage.SEARCH_SPECIALTY_LOCATION: self.search_specialty_location,
            Stage.WAIT_AVAILABILITY: self.wait_availability,
            Stage.SELECT_DATE: self.select_date,
            Stage.SELECT_TIME: self.select_time,
            Stage.ACCEPT_TERMS: self.accept_terms,
            Stage.FILL_CONTACT: self.fill_contact,
            Stage.SUBMIT_RESERVATION: self.submit_reservation,
        }

    async def run_step(self, stage: Stage, page: Page, request: BookingRequest) -> StepOutcome:
        """
        Run one stage and report its outcome.

        Booking errors raised by the stage are returned as a failed outcome;
        anything else (browser crash, programming error) propagates.

        Args:
            stage: Stage to run
            page: Page positioned at the stage's screen
            request: Booking parameters

        Returns:
            StepOutcome for the stage
        """
        handler = self._handlers.get(stage)
        if handler is None:
            return StepOutcome.failed(
                stage, ValidationError(f"Stage '{stage.value}' is not runnable", field="stage")
            )

        logger.info(f"▶️ Stage {stage.value}")
        try:
            outcome = await handler(page, request)
        except BookingBotError as e:
            logger.warning(f"{LogEmoji.WARNING} Stage {stage.value} failed: {e.message}")
            return StepOutcome.failed(stage, e)

        logger.info(
            f"{LogEmoji.SUCCESS} Stage {stage.value} done"
            + (f" (matched '{outcome.matched_label}')" if outcome.matched_label else "")
            + (f" [{outcome.detail}]" if outcome.detail else "")
        )
        return outcome

    # ------------------------------------------------------------------ helpers

    def _sel(self, path: str) -> List[str]:
        return self.selectors.get_with_fallback(path)

    async def _wait_for_any(
        self, page: Page, selectors: List[str], timeout: float, stage: Stage, what: str
    ) -> None:
        """Bounded precondition: wait until any selector yields a visible element."""

        async def present() -> bool:
            return await find(page, selectors) is not None

        if not await poll_until(present, timeout, self.timings.poll_interval):
            raise PreconditionTimeoutError(
                stage.value,
                timeout,
                waiting_for=what,
                diagnostics=await visible_labels(page, selectors),
            )

    async def _activate_or_reject(
        self,
        element: ElementHandle,
        stage: Stage,
        what: str,
        confirm: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> str:
        strategy = await activate(element, confirm)
        if strategy is None:
            raise ActionRejectedError(f"Could not activate {what}", stage=stage.value)
        return strategy

    async def _poll_enabled_button(
        self,
        page: Page,
        selectors: List[str],
        label: str,
        timeout: float,
        attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> Tuple[Optional[ElementHandle], bool]:
        """
        Poll for a labelled button until it is enabled.

        Returns:
            (button, enabled): the last button seen (None if never found) and
            whether it became enabled
        """
        state: Dict[str, Optional[ElementHandle]] = {"button": None}

        async def enabled() -> bool:
            button = await best_match(page, selectors, label, text_fallback=False)
            if button is None:
                return False
            state["button"] = button
            return await button.is_enabled()

        ok = await poll_until(
            enabled,
            timeout,
            interval if interval is not None else self.timings.poll_interval,
            attempts=attempts,
        )
        return state["button"], ok

    # ------------------------------------------------------------------ stages

    async def identify_patient(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Pick the document type, type the document number and continue."""
        stage = Stage.IDENTIFY_PATIENT
        t = self.timings
        trigger_selectors = self._sel("identify.document_type_trigger")
        option_selectors = self._sel("identify.document_type_option")
        input_selectors = self._sel("identify.document_number_input")

        await self._wait_for_any(
            page,
            trigger_selectors + input_selectors,
            t.identify_timeout,
            stage,
            "identification form",
        )

        matched_type: Optional[str] = None
        trigger = await find(page, trigger_selectors)
        if trigger is None:
            trigger = await find(page, (), text=PortalLabels.DOCUMENT_TRIGGER)

        if trigger is None:
            logger.warning("Document type selector not found, keeping the portal default")
        else:
            await self._activate_or_reject(trigger, stage, "document type selector")
            await settle(t.dropdown_open_settle)

            option = await best_match(
                page, option_selectors, request.document_type, text_fallback=False
            )
            if option is None:
                raise ElementNotFoundError(
                    target=f"document type '{request.document_type}'",
                    tried_selectors=option_selectors,
                    stage=stage.value,
                    diagnostics=await visible_labels(page, option_selectors),
                )
            matched_type = " ".join((await read_text(option)).split())
            await self._activate_or_reject(option, stage, "document type option")
            await settle(t.option_pick_settle)

        number_input = await require(
            page,
            input_selectors,
            target="document number input",
            stage=stage.value,
            text_fallback=False,
        )
        await type_into(number_input, request.document_number, delay_ms=t.typing_delay_ms)
        logger.info(f"Typed document number {mask_document_number(request.document_number)}")
        await settle(t.document_typed_settle)

        continue_selectors = self._sel("identify.continue_button")
        button, enabled = await self._poll_enabled_button(
            page,
            continue_selectors,
            PortalLabels.CONTINUE,
            timeout=t.continue_poll_interval * t.continue_poll_attempts,
            attempts=t.continue_poll_attempts,
            interval=t.continue_poll_interval,
        )
        if button is None:
            raise ElementNotFoundError(
                target=f"'{PortalLabels.CONTINUE}' button",
                tried_selectors=continue_selectors,
                stage=stage.value,
                diagnostics=await visible_labels(page, continue_selectors),
            )
        if not enabled:
            raise ActionRejectedError(
                f"'{PortalLabels.CONTINUE}' stayed disabled after "
                f"{t.continue_poll_attempts} checks",
                stage=stage.value,
            )

        await self._activate_or_reject(button, stage, f"'{PortalLabels.CONTINUE}' button")
        await settle(t.after_continue_settle)
        return StepOutcome.ok(stage, matched_label=matched_type or request.document_type)

    async def select_service(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Click the service card whose heading matches the requested service."""
        stage = Stage.SELECT_SERVICE
        t = self.timings
        card_selectors = self._sel("service.cards")
        label_selectors = self._sel("service.card_label")

        await self._wait_for_any(page, card_selectors, t.service_timeout, stage, "service cards")
        await settle(t.service_cards_settle)

        label = await best_match(page, label_selectors, request.service, text_fallback=False)
        if label is None:
            raise ElementNotFoundError(
                target=f"service '{request.service}'",
                tried_selectors=label_selectors,
                stage=stage.value,
                diagnostics=await visible_labels(page, label_selectors),
            )
        label_text = " ".join((await read_text(label)).split())

        clickable: Optional[ElementHandle] = None
        for selector in self._sel("service.card_clickable"):
            clickable = await closest(label, selector)
            if clickable is not None:
                break
        if clickable is None:
            raise ActionRejectedError(
                f"Service card '{label_text}' has no clickable container", stage=stage.value
            )

        search_selectors = self._sel("search.specialty_input")

        async def search_form_shown() -> bool:
            return await poll_until(
                lambda: self._is_present(page, search_selectors),
                t.service_timeout,
                t.poll_interval,
            )

        await self._activate_or_reject(
            clickable, stage, f"service card '{label_text}'", confirm=search_form_shown
        )
        await settle(t.after_service_settle)
        return StepOutcome.ok(stage, matched_label=label_text)

    async def _is_present(self, page: Page, selectors: List[str]) -> bool:
        return await find(page, selectors) is not None

    async def _pick_first_suggestion(self, page: Page, field_name: str) -> Optional[str]:
        t = self.timings
        suggestion_selectors = self._sel("search.suggestion")
        found: Dict[str, Optional[ElementHandle]] = {"el": None}

        async def shown() -> bool:
            found["el"] = await find(page, suggestion_selectors)
            return found["el"] is not None

        await poll_until(shown, t.suggestion_timeout, t.poll_interval)
        suggestion = found["el"]
        if suggestion is None:
            logger.info(f"No {field_name} suggestions shown, keeping typed text")
            return None

        label = " ".join((await read_text(suggestion)).split())
        await activate(suggestion)
        await settle(t.after_suggestion_settle)
        return label

    async def search_specialty_location(
        self, page: Page, request: BookingRequest
    ) -> StepOutcome:
        """Fill specialty and location filters and trigger the search."""
        stage = Stage.SEARCH_SPECIALTY_LOCATION
        t = self.timings
        if not request.specialty:
            raise ValidationError("Specialty is required to search availability", "specialty")

        specialty_selectors = self._sel("search.specialty_input")
        await self._wait_for_any(
            page, specialty_selectors, t.search_timeout, stage, "specialty filter"
        )
        await settle(t.search_form_settle)

        specialty_input = await require(
            page, specialty_selectors, target="specialty filter", stage=stage.value,
            text_fallback=False,
        )
        await type_into(specialty_input, request.specialty, delay_ms=t.typing_delay_ms)
        picked = await self._pick_first_suggestion(page, "specialty")

        if request.location:
            location_input = await require(
                page,
                self._sel("search.location_input"),
                target="location filter",
                stage=stage.value,
                text_fallback=False,
            )
            await type_into(location_input, request.location, delay_ms=t.typing_delay_ms)
            await self._pick_first_suggestion(page, "location")

        button, enabled = await self._poll_enabled_button(
            page, self._sel("search.search_button"), PortalLabels.SEARCH, t.search_enabled_timeout
        )
        if button is not None and enabled:
            await activate(button)
        elif button is None:
            logger.warning(f"'{PortalLabels.SEARCH}' button not found, relying on auto-load")
        else:
            logger.warning(f"'{PortalLabels.SEARCH}' button stayed disabled, relying on auto-load")

        return StepOutcome.ok(stage, matched_label=picked or request.specialty)

    async def wait_availability(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Wait until reserve-slot buttons render or the portal says there are none."""
        stage = Stage.WAIT_AVAILABILITY
        t = self.timings
        state: Dict[str, Optional[str]] = {"first": None, "no_slots": None}

        async def settled() -> bool:
            slots = await slot_buttons(page, self.selectors)
            if slots:
                state["first"] = slots[0][1]
                return True
            if contains_any(await body_text(page), NO_AVAILABILITY_MARKERS):
                state["no_slots"] = "yes"
                return True
            return False

        logger.info(f"{LogEmoji.WAITING} Waiting up to {t.availability_timeout:g}s for slots")
        if not await poll_until(settled, t.availability_timeout, t.poll_interval):
            raise PreconditionTimeoutError(
                stage.value, t.availability_timeout, waiting_for="reserve-slot buttons"
            )

        if state["no_slots"]:
            logger.info("Portal reports no availability for this search")
            return StepOutcome.ok(stage, detail=UnavailableReason.NO_SLOTS.value)

        await settle(t.availability_settle)
        return StepOutcome.ok(stage, matched_label=state["first"])

    async def select_date(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Open the date block matching the requested date, if one is usable."""
        stage = Stage.SELECT_DATE
        if not request.date:
            return StepOutcome.ok(stage, detail="skipped")

        observed: List[str] = []
        for block, text in await date_blocks(page, self.selectors):
            observed.append(text)
            if not matches(text, request.date):
                continue
            # The marker can sit in any child, not only the label paragraphs
            if contains_any(await read_text(block), NO_SLOTS_MARKERS):
                logger.info(f"Date block '{text}' matches but has no slots, skipping")
                continue

            await self._activate_or_reject(block, stage, f"date '{text}'")
            await settle(self.timings.after_date_settle)
            return StepOutcome.ok(stage, matched_label=text)

        logger.warning(
            f"{LogEmoji.WARNING} No usable date block for '{request.date}', "
            "time selection will fall back"
        )
        return StepOutcome.ok(stage, detail="date_not_found", diagnostics=observed)

    async def _card_text(self, button: ElementHandle) -> str:
        for selector in self._sel("availability.slot_card"):
            card = await closest(button, selector)
            if card is not None:
                return await read_text(card)
        return ""

    async def select_time(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Click the requested slot, else the chronologically first one."""
        stage = Stage.SELECT_TIME
        slots = await slot_buttons(page, self.selectors)
        if not slots:
            slot_selectors = self._sel("availability.slot_button")
            raise ElementNotFoundError(
                target="reserve slot",
                tried_selectors=slot_selectors,
                stage=stage.value,
                diagnostics=await visible_labels(page, slot_selectors),
            )

        substituted = False
        if request.doctor:
            preferred = [
                (button, hhmm)
                for button, hhmm in slots
                if matches(await self._card_text(button), request.doctor)
            ]
            if preferred:
                slots = preferred
            else:
                logger.info(f"No slots for doctor '{request.doctor}', ignoring preference")
                substituted = True

        wanted = parse_time(request.time)
        chosen = next(((b, h) for b, h in slots if h == wanted), None) if wanted else None
        if chosen is None:
            # min() keeps document order among equal times
            chosen = min(slots, key=lambda slot: minute_of_day(slot[1]))
            if request.time:
                substituted = True
                logger.info(
                    f"Requested time {request.time} not offered, taking {chosen[1]} instead"
                )

        button, hhmm = chosen
        await self._activate_or_reject(button, stage, f"slot {hhmm}")
        await settle(self.timings.after_time_settle)
        return StepOutcome.ok(
            stage, matched_label=hhmm, detail=SUBSTITUTED if substituted else None
        )

    async def accept_terms(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Accept the terms dialog when it is shown."""
        stage = Stage.ACCEPT_TERMS
        t = self.timings
        selectors = self._sel("terms.accept_button")
        found: Dict[str, Optional[ElementHandle]] = {"el": None}

        async def shown() -> bool:
            found["el"] = await best_match(
                page, selectors, PortalLabels.ACCEPT_TERMS, text_fallback=False
            )
            return found["el"] is not None

        await poll_until(shown, t.terms_timeout, t.poll_interval)
        button = found["el"]
        if button is None:
            logger.info("Terms dialog not shown")
            return StepOutcome.ok(stage, detail="not_shown")

        label = " ".join((await read_text(button)).split())
        await self._activate_or_reject(button, stage, "terms acceptance")
        await settle(t.after_terms_settle)
        return StepOutcome.ok(stage, matched_label=label)

    async def _tick_unchecked_boxes(self, page: Page) -> int:
        ticked = 0
        label_selectors = self._sel("contact.checkbox_label")
        for selector in self._sel("contact.checkbox"):
            for checkbox in await page.query_selector_all(selector):
                if await checkbox.is_checked():
                    continue
                target: Optional[ElementHandle] = None
                for label_selector in label_selectors:
                    target = await closest(checkbox, label_selector)
                    if target is not None:
                        break
                await activate(target or checkbox)
                ticked += 1
        return ticked

    async def fill_contact(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Enter phone and email and tick consent checkboxes."""
        stage = Stage.FILL_CONTACT
        t = self.timings

        if request.phone:
            phone_input = await find(page, self._sel("contact.phone_input"))
            if phone_input is None:
                logger.warning("Phone input not found")
            else:
                await type_into(phone_input, request.phone, delay_ms=t.typing_delay_ms)
                logger.info(f"Typed phone {mask_phone(request.phone)}")

        if request.email:
            email_input = await find(page, self._sel("contact.email_input"))
            if email_input is None:
                logger.warning("Email input not found")
            else:
                await type_into(email_input, request.email, delay_ms=t.typing_delay_ms)
                if (await email_input.input_value()).strip() != request.email:
                    logger.info("Email input value differs after typing, forcing it")
                    await force_value(email_input, request.email)
                logger.info(f"Typed email {mask_email(request.email)}")

        ticked = await self._tick_unchecked_boxes(page)
        await settle(t.after_contact_settle)
        return StepOutcome.ok(stage, detail=f"ticked {ticked} checkbox(es)" if ticked else None)

    async def _page_lines(self, page: Page) -> List[str]:
        lines = (normalize(line) for line in (await body_text(page)).splitlines())
        return [line for line in lines if line]

    async def _is_ready(self, button: ElementHandle) -> bool:
        return await button.is_enabled() and await cursor_of(button) == "pointer"

    async def _remediate_submit(self, page: Page, request: BookingRequest) -> Optional[str]:
        """Fix the first unmet submit precondition. Returns what was fixed."""
        for selector in self._sel("contact.checkbox"):
            for checkbox in await page.query_selector_all(selector):
                if not await checkbox.is_checked():
                    await self._tick_unchecked_boxes(page)
                    return "unchecked consent checkbox"

        email_input = await find(page, self._sel("contact.email_input"))
        if request.email and email_input is not None:
            if (await email_input.input_value()).strip() != request.email:
                await force_value(email_input, request.email)
                return "email mismatch"

        phone_input = await find(page, self._sel("contact.phone_input"))
        if request.phone and phone_input is not None:
            if not (await phone_input.input_value()).strip():
                await type_into(phone_input, request.phone, delay_ms=self.timings.typing_delay_ms)
                return "empty phone"

        return None

    async def submit_reservation(self, page: Page, request: BookingRequest) -> StepOutcome:
        """Press the reserve button and classify the portal's response."""
        stage = Stage.SUBMIT_RESERVATION
        t = self.timings
        selectors = self._sel("submit.reserve_button")
        found: Dict[str, Optional[ElementHandle]] = {"el": None}

        async def shown() -> bool:
            found["el"] = await best_match(page, selectors, PortalLabels.SUBMIT)
            return found["el"] is not None

        await poll_until(shown, t.submit_timeout, t.poll_interval)
        button = found["el"]
        if button is None:
            raise ElementNotFoundError(
                target=f"'{PortalLabels.SUBMIT}' button",
                tried_selectors=selectors,
                stage=stage.value,
                diagnostics=await visible_labels(page, selectors),
            )

        if not await self._is_ready(button):
            fixed = await self._remediate_submit(page, request)
            if fixed:
                logger.info(f"{LogEmoji.RETRY} Submit not ready, fixed: {fixed}")
                await settle(t.after_contact_settle)
                button = await best_match(page, selectors, PortalLabels.SUBMIT) or button
            if not await self._is_ready(button):
                raise ActionRejectedError(
                    f"'{PortalLabels.SUBMIT}' is not clickable",
                    stage=stage.value,
                    diagnostics=[fixed] if fixed else ["no remediable precondition found"],
                )

        before = set(await self._page_lines(page))
        fresh: Dict[str, str] = {"text": ""}

        async def changed() -> bool:
            lines = [line for line in await self._page_lines(page) if line not in before]
            fresh["text"] = " ".join(lines)
            return bool(lines)

        async def responded() -> bool:
            return await poll_until(changed, t.outcome_timeout, t.poll_interval)

        # Only text the click brought up is classified
        await self._activate_or_reject(
            button, stage, f"'{PortalLabels.SUBMIT}' button", confirm=responded
        )

        verdict: Dict[str, Optional[str]] = {"success": None, "error": None}

        async def decided() -> bool:
            await changed()
            for keyword in OUTCOME_SUCCESS_KEYWORDS:
                if keyword in fresh["text"]:
                    verdict["success"] = keyword
                    return True
            for keyword in OUTCOME_ERROR_KEYWORDS:
                if keyword in fresh["text"]:
                    verdict["error"] = keyword
                    return True
            return False

        await poll_until(decided, t.outcome_timeout, t.poll_interval)

        if verdict["success"]:
            logger.info(f"{LogEmoji.SUCCESS} Portal confirmed the reservation")
            return StepOutcome.ok(stage, matched_label=verdict["success"])

        snippet = fresh["text"][:200]
        if verdict["error"]:
            raise ActionRejectedError(
                f"Portal rejected the reservation ({verdict['error']})",
                stage=stage.value,
                diagnostics=[snippet],
            )
        raise AmbiguousOutcomeError(stage=stage.value, diagnostics=[snippet])


async def run_step(stage: Stage, page: Page, request: BookingRequest) -> StepOutcome:
    """Run one stage with the configured timings and selectors."""
    return await StepExecutor().run_step(stage, page, request)
