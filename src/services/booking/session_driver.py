"""Single-use browser session that replays the booking stages up to a target."""

from typing import Callable, List, Optional

from loguru import logger
from playwright.async_api import Page

from src.constants import LogEmoji
from src.core.config.settings import BotSettings, get_settings

from ...core.enums import Stage, UnavailableReason
from ...core.exceptions import BookingBotError, PreconditionTimeoutError
from ...models.booking import AvailabilityOptions, BookingRequest, BookingResult, StepOutcome
from ...utils.error_capture import ErrorCapture, get_error_capture
from ...utils.helpers import safe_navigate, screenshot_b64, settle
from ...utils.masking import mask_document_number
from ..bot.browser_manager import BrowserManager
from .availability_extractor import extract
from .step_executor import SUBSTITUTED, StepExecutor

BrowserFactory = Callable[[BotSettings], BrowserManager]


class SessionDriver:
    """
    Drive one browser page through the booking stages.

    An instance is single-use: one browser, one page, released on every exit
    path. Every failure is reported as a BookingResult, never raised.
    """

    def __init__(
        self,
        request: BookingRequest,
        settings: Optional[BotSettings] = None,
        executor: Optional[StepExecutor] = None,
        browser_factory: Optional[BrowserFactory] = None,
        error_capture: Optional[ErrorCapture] = None,
    ):
        """
        Initialize session driver.

        Args:
            request: Booking parameters for this run
            settings: Application settings (defaults to the global settings)
            executor: Stage executor (defaults to one built from settings)
            browser_factory: Callable building the BrowserManager
            error_capture: Failure recorder (defaults to the global one)
        """
        self.request = request
        self.settings = settings or get_settings()
        self.executor = executor or StepExecutor(self.settings.timings)
        self.browser_factory = browser_factory or BrowserManager
        self.error_capture = error_capture or get_error_capture()
        self.outcomes: List[StepOutcome] = []
        self.current_stage = Stage.START
        self.last_screenshot: Optional[str] = None
        self._used = False

    async def run(self, until: Stage = Stage.WAIT_AVAILABILITY) -> BookingResult:
        """
        Run the stages up to and including a target stage.

        Args:
            until: SELECT_SERVICE for a validated partial context,
                WAIT_AVAILABILITY for the offered options, SELECT_DATE for
                the times of one date, DONE to book

        Returns:
            BookingResult describing how the run ended

        Raises:
            RuntimeError: If the instance was already used
        """
        if self._used:
            raise RuntimeError("SessionDriver instances are single-use")
        self._used = True

        logger.info(
            f"{LogEmoji.START} Booking run for "
            f"{mask_document_number(self.request.document_number)} until {until.value}"
        )
        try:
            async with self.browser_factory(self.settings) as browser:
                page = await browser.new_page()
                try:
                    return await self._drive(page, until)
                except Exception as e:
                    return await self._error_result(page, e, self.current_stage)
        except Exception as e:
            # Browser could not be started or released
            logger.exception(f"{LogEmoji.ERROR} Browser session failed: {e}")
            return self._record(BookingResult.failure(e, stage=Stage.START.value), e, None)

    async def _drive(self, page: Page, until: Stage) -> BookingResult:
        await safe_navigate(
            page,
            self.settings.portal_url,
            wait_until="domcontentloaded",
            timeout=self.settings.navigation_timeout_ms,
        )
        await settle(self.settings.timings.page_load_settle)

        for stage in until.stages_through():
            self.current_stage = stage
            outcome = await self.executor.run_step(stage, page, self.request)
            self.outcomes.append(outcome)

            if not outcome.succeeded:
                return await self._failed_stage(page, outcome)

            if stage == Stage.WAIT_AVAILABILITY and outcome.detail == UnavailableReason.NO_SLOTS:
                logger.info(f"{LogEmoji.CALENDAR} No availability for this search")
                return BookingResult.unavailable(
                    UnavailableReason.NO_SLOTS, await screenshot_b64(page)
                )

            if self.settings.milestone_screenshots:
                self.last_screenshot = await screenshot_b64(page)
                logger.debug(f"{LogEmoji.CAMERA} Milestone screenshot after {stage.value}")

        return await self._final_result(page, until)

    async def _final_result(self, page: Page, until: Stage) -> BookingResult:
        screenshot = await screenshot_b64(page)
        context = self.request.context

        if until.position < Stage.WAIT_AVAILABILITY.position:
            return BookingResult.available(
                AvailabilityOptions(),
                context,
                screenshot,
                message="Datos validados. Indica la especialidad y la ubicación.",
            )

        if until == Stage.DONE:
            return self._booked(screenshot)

        options = await extract(
            page,
            max_dates=self.settings.max_dates,
            max_times=self.settings.max_times,
            selectors=self.executor.selectors,
        )
        if not options.times:
            logger.info(f"{LogEmoji.CALENDAR} Grid rendered but no bookable times were found")
            return BookingResult.unavailable(UnavailableReason.NO_SLOTS, screenshot)

        logger.info(f"{LogEmoji.FOUND} Options: dates={options.dates} times={options.times}")
        return BookingResult.available(options, context, screenshot)

    def _booked(self, screenshot: Optional[str]) -> BookingResult:
        by_stage = {outcome.stage: outcome for outcome in self.outcomes}
        date_outcome = by_stage.get(Stage.SELECT_DATE)
        time_outcome = by_stage.get(Stage.SELECT_TIME)

        # An unmatched date means the slot came from whatever day the grid showed
        booked_date = date_outcome.matched_label if date_outcome else None
        date_missed = bool(self.request.date) and booked_date is None
        booked_time = time_outcome.matched_label if time_outcome else self.request.time
        substituted = date_missed or bool(time_outcome and time_outcome.detail == SUBSTITUTED)

        logger.info(
            f"{LogEmoji.SUCCESS} Reservation completed: {booked_date} {booked_time}"
            + (" (substituted)" if substituted else "")
        )
        return BookingResult.booked(
            specialty=self.request.specialty,
            booked_date=booked_date,
            booked_time=booked_time,
            requested_date=self.request.date,
            requested_time=self.request.time,
            substituted=substituted,
            screenshot=screenshot,
        )

    async def _failed_stage(self, page: Page, outcome: StepOutcome) -> BookingResult:
        error = outcome.error
        screenshot = await screenshot_b64(page)

        if outcome.stage == Stage.WAIT_AVAILABILITY and isinstance(
            error, PreconditionTimeoutError
        ):
            # The grid never rendered and the portal never said "no slots":
            # either the portal is slow or the locators are stale.
            logger.error(
                f"{LogEmoji.ALERT} Availability grid did not render within "
                f"{error.timeout:g}s, possible automation defect"
            )
            self._capture(error, outcome.stage, page, screenshot)
            return BookingResult.unavailable(UnavailableReason.TIMEOUT, screenshot)

        if error is None:
            error = BookingBotError(f"Stage {outcome.stage.value} failed without an error")
        logger.error(f"{LogEmoji.ERROR} Run stopped at {outcome.stage.value}: {error.message}")
        return self._record(
            BookingResult.failure(error, stage=outcome.stage.value, screenshot=screenshot),
            error,
            page,
        )

    async def _error_result(self, page: Page, error: Exception, stage: Stage) -> BookingResult:
        if isinstance(error, BookingBotError):
            logger.error(f"{LogEmoji.ERROR} Run failed at {stage.value}: {error.message}")
        else:
            logger.exception(f"{LogEmoji.ERROR} Unexpected failure at {stage.value}: {error}")
        screenshot = await screenshot_b64(page)
        return self._record(
            BookingResult.failure(error, stage=stage.value, screenshot=screenshot), error, page
        )

    def _record(
        self, result: BookingResult, error: BaseException, page: Optional[Page]
    ) -> BookingResult:
        self._capture(error, result.stage, page, result.screenshot)
        return result

    def _capture(
        self,
        error: BaseException,
        stage: Optional[str],
        page: Optional[Page],
        screenshot: Optional[str],
    ) -> None:
        self.error_capture.capture(
            error,
            stage=stage.value if isinstance(stage, Stage) else stage,
            diagnostics=getattr(error, "diagnostics", None),
            url=page.url if page is not None else None,
            screenshot=screenshot,
        )
