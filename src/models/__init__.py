"""Booking domain models."""

from .booking import (
    AvailabilityOptions,
    BookingRequest,
    BookingResult,
    ContactInfo,
    Identity,
    ResumableContext,
    StepOutcome,
)

__all__ = [
    "AvailabilityOptions",
    "BookingRequest",
    "BookingResult",
    "ContactInfo",
    "Identity",
    "ResumableContext",
    "StepOutcome",
]
