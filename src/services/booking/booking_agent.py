"""Entry points used by the API and the conversational layer."""

from typing import Any, Optional

from loguru import logger

from ...core.enums import Stage
from ...models.booking import BookingRequest, BookingResult, ContactInfo, Identity, ResumableContext
from .session_driver import SessionDriver


async def start_booking(
    identity: Identity,
    service_params: ResumableContext,
    date: Optional[str] = None,
    **driver_options: Any,
) -> BookingResult:
    """
    Search availability for a service, specialty and location.

    Args:
        identity: Patient identification
        service_params: Service, specialty and location to search
        date: Optional date label; when given only that date's times are returned
        **driver_options: Passed to SessionDriver (settings, browser_factory, ...)

    Returns:
        opciones_disponibles, no_disponible or error result
    """
    request = BookingRequest.from_context(identity, service_params, date=date)
    until = Stage.SELECT_DATE if date else Stage.WAIT_AVAILABILITY
    return await SessionDriver(request, **driver_options).run(until=until)


async def confirm_booking(
    previous_context: ResumableContext,
    chosen_date: Optional[str],
    chosen_time: Optional[str],
    contact_info: ContactInfo,
    identity: Identity,
    doctor: Optional[str] = None,
    **driver_options: Any,
) -> BookingResult:
    """
    Replay the search in a fresh session and book the chosen slot.

    When the chosen slot is gone the first offered slot is taken instead and
    the result says so.

    Args:
        previous_context: Context returned by a previous start_booking call
        chosen_date: Date label picked by the patient
        chosen_time: Time (HH:MM) picked by the patient
        contact_info: Phone and email for the reservation form
        identity: Patient identification
        doctor: Optional doctor preference
        **driver_options: Passed to SessionDriver (settings, browser_factory, ...)

    Returns:
        success or error result
    """
    if not contact_info.is_complete():
        logger.warning("Confirming without complete contact info, the portal may reject it")

    request = BookingRequest.from_context(
        identity,
        previous_context,
        date=chosen_date,
        time=chosen_time,
        contact=contact_info,
        doctor=doctor,
    )
    return await SessionDriver(request, **driver_options).run(until=Stage.DONE)
