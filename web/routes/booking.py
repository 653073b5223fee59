"""One-shot booking routes: availability search and reservation."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from src.constants import LogEmoji
from src.services.booking.booking_agent import confirm_booking, start_booking
from src.utils.error_capture import ErrorCapture
from src.utils.masking import mask_document_number
from web.dependencies import get_driver_options, get_error_capture
from web.models.booking import ConfirmBookingRequest, StartBookingRequest

router = APIRouter(prefix="/api/booking", tags=["booking"])


@router.post("/start")
async def start(
    body: StartBookingRequest,
    driver_options: Dict[str, Any] = Depends(get_driver_options),
) -> Dict[str, Any]:
    """
    Search availability for a specialty and location.

    Returns:
        opciones_disponibles, no_disponible or error result
    """
    logger.info(
        f"{LogEmoji.SEARCH} Availability search for "
        f"{mask_document_number(body.identity.document_number)}"
    )
    result = await start_booking(
        body.identity.to_identity(),
        body.search.to_context(),
        date=body.date,
        **driver_options,
    )
    return result.to_dict()


@router.post("/confirm")
async def confirm(
    body: ConfirmBookingRequest,
    driver_options: Dict[str, Any] = Depends(get_driver_options),
) -> Dict[str, Any]:
    """
    Book a previously offered slot.

    Returns:
        success or error result
    """
    logger.info(
        f"{LogEmoji.CALENDAR} Reservation for "
        f"{mask_document_number(body.identity.document_number)}: {body.date} {body.time}"
    )
    result = await confirm_booking(
        body.context.to_context(),
        body.date,
        body.time,
        body.contact.to_contact(),
        body.identity.to_identity(),
        doctor=body.doctor,
        **driver_options,
    )
    return result.to_dict()


@router.get("/errors")
async def recent_errors(
    limit: int = Query(default=20, ge=1, le=100),
    capture: ErrorCapture = Depends(get_error_capture),
) -> Dict[str, Any]:
    """List recently captured failures, newest first."""
    errors = capture.get_recent_errors(limit=limit)
    return {"count": len(errors), "errors": errors}


@router.get("/errors/{error_id}")
async def error_detail(
    error_id: str,
    capture: ErrorCapture = Depends(get_error_capture),
) -> Dict[str, Any]:
    """Get one captured failure."""
    record = capture.get_error_by_id(error_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Error {error_id} not found")
    return record
