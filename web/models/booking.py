"""Booking request models for RedSalud-Bot web application."""

from typing import Optional

from pydantic import BaseModel, Field

from src.constants import DEFAULT_DOCUMENT_TYPE, DEFAULT_SERVICE
from src.models.booking import ContactInfo, Identity, ResumableContext


class IdentityModel(BaseModel):
    """Patient identification."""

    document_number: str = Field(min_length=1, max_length=32)
    document_type: str = DEFAULT_DOCUMENT_TYPE

    def to_identity(self) -> Identity:
        return Identity(document_number=self.document_number, document_type=self.document_type)


class SearchContextModel(BaseModel):
    """Service, specialty and location to search."""

    service: str = DEFAULT_SERVICE
    specialty: str = Field(min_length=1)
    location: Optional[str] = None

    def to_context(self) -> ResumableContext:
        return ResumableContext(
            service=self.service, specialty=self.specialty, location=self.location
        )


class StartBookingRequest(BaseModel):
    """Availability search request."""

    identity: IdentityModel
    search: SearchContextModel
    date: Optional[str] = None  # Only this date's times are returned


class ContactModel(BaseModel):
    """Contact details for the reservation form."""

    phone: Optional[str] = None
    email: Optional[str] = None

    def to_contact(self) -> ContactInfo:
        return ContactInfo(phone=self.phone, email=self.email)


class ConfirmBookingRequest(BaseModel):
    """Reservation request for a previously offered slot."""

    identity: IdentityModel
    context: SearchContextModel
    date: Optional[str] = None
    time: Optional[str] = None  # Format: HH:MM
    doctor: Optional[str] = None
    contact: ContactModel
