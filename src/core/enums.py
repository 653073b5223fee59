"""Centralized enum definitions for RedSalud-Bot."""

from enum import Enum


class BookingStatus(str, Enum):
    """Variants of a booking run result."""
    OPCIONES_DISPONIBLES = "opciones_disponibles"
    NO_DISPONIBLE = "no_disponible"
    SUCCESS = "success"
    ERROR = "error"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class Stage(str, Enum):
    """Booking stages in the order the portal form requires them."""
    START = "start"
    IDENTIFY_PATIENT = "identify_patient"
    SELECT_SERVICE = "select_service"
    SEARCH_SPECIALTY_LOCATION = "search_specialty_location"
    WAIT_AVAILABILITY = "wait_availability"
    SELECT_DATE = "select_date"
    SELECT_TIME = "select_time"
    ACCEPT_TERMS = "accept_terms"
    FILL_CONTACT = "fill_contact"
    SUBMIT_RESERVATION = "submit_reservation"
    DONE = "done"

    @classmethod
    def ordered(cls) -> list:
        """Return stages in execution order."""
        return list(cls)

    @property
    def position(self) -> int:
        """Index of this stage in execution order."""
        return list(type(self)).index(self)

    def stages_through(self) -> list:
        """Return the runnable stages from IDENTIFY_PATIENT up to and including this one."""
        return [
            s
            for s in type(self)
            if s not in (Stage.START, Stage.DONE) and s.position <= self.position
        ]


class UnavailableReason(str, Enum):
    """Why a search ended without bookable slots."""
    NO_SLOTS = "no_slots"
    TIMEOUT = "timeout"


class ChatIntent(str, Enum):
    """Structured intents produced by the chat layer."""
    AGENDAR = "agendar"
    BORRAR = "borrar"
    MODIFICAR = "modificar"
    HABLAR = "hablar"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]
