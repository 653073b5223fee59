"""Pydantic models for RedSalud-Bot web application."""

from .booking import (
    ConfirmBookingRequest,
    ContactModel,
    IdentityModel,
    SearchContextModel,
    StartBookingRequest,
)
from .chat import ChatTurnRequest, ChatTurnResponse

__all__ = [
    # Booking models
    "IdentityModel",
    "SearchContextModel",
    "StartBookingRequest",
    "ContactModel",
    "ConfirmBookingRequest",
    # Chat models
    "ChatTurnRequest",
    "ChatTurnResponse",
]
