"""Booking domain records passed between the driver, the orchestrator and the API."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..constants import DEFAULT_DOCUMENT_TYPE, DEFAULT_SERVICE
from ..core.enums import BookingStatus, Stage, UnavailableReason
from ..core.exceptions import BookingBotError


@dataclass(frozen=True)
class Identity:
    """Patient identification as the portal asks for it."""

    document_number: str
    document_type: str = DEFAULT_DOCUMENT_TYPE


@dataclass(frozen=True)
class ContactInfo:
    """Contact details entered before the reservation is submitted."""

    phone: Optional[str] = None
    email: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.phone and self.email)


@dataclass(frozen=True)
class ResumableContext:
    """Search parameters already confirmed against the portal."""

    service: str
    specialty: Optional[str] = None
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "servicio": self.service,
            "especialidad": self.specialty,
            "ubicacion": self.location,
        }


@dataclass(frozen=True)
class BookingRequest:
    """
    Everything one driver run needs.

    Immutable: each orchestrator turn derives a new request with with_updates()
    and replays it from the first stage.
    """

    document_number: str
    document_type: str = DEFAULT_DOCUMENT_TYPE
    service: str = DEFAULT_SERVICE
    specialty: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    doctor: Optional[str] = None
    time: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def with_updates(self, **changes: Any) -> "BookingRequest":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_context(
        cls,
        identity: Identity,
        context: ResumableContext,
        date: Optional[str] = None,
        time: Optional[str] = None,
        contact: Optional[ContactInfo] = None,
        doctor: Optional[str] = None,
    ) -> "BookingRequest":
        """
        Rebuild a request from a previously confirmed context.

        Args:
            identity: Patient identification
            context: Confirmed service, specialty and location
            date: Chosen date label
            time: Chosen time (HH:MM)
            contact: Contact details for the final stages
            doctor: Optional doctor preference

        Returns:
            BookingRequest ready for a replay run
        """
        contact = contact or ContactInfo()
        return cls(
            document_type=identity.document_type,
            document_number=identity.document_number,
            service=context.service,
            specialty=context.specialty,
            location=context.location,
            date=date,
            time=time,
            doctor=doctor,
            phone=contact.phone,
            email=contact.email,
        )

    @property
    def identity(self) -> Identity:
        return Identity(document_number=self.document_number, document_type=self.document_type)

    @property
    def context(self) -> ResumableContext:
        return ResumableContext(
            service=self.service, specialty=self.specialty, location=self.location
        )


@dataclass
class StepOutcome:
    """Result of running a single stage."""

    stage: Stage
    succeeded: bool
    matched_label: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)
    error: Optional[BookingBotError] = None
    detail: Optional[str] = None

    @classmethod
    def ok(
        cls,
        stage: Stage,
        matched_label: Optional[str] = None,
        detail: Optional[str] = None,
        diagnostics: Optional[List[str]] = None,
    ) -> "StepOutcome":
        return cls(
            stage=stage,
            succeeded=True,
            matched_label=matched_label,
            detail=detail,
            diagnostics=list(diagnostics or []),
        )

    @classmethod
    def failed(cls, stage: Stage, error: BookingBotError) -> "StepOutcome":
        return cls(
            stage=stage,
            succeeded=False,
            diagnostics=list(getattr(error, "diagnostics", []) or []),
            error=error,
        )


@dataclass
class AvailabilityOptions:
    """Dates and times harvested from the availability grid."""

    dates: List[str] = field(default_factory=list)
    times: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.dates and not self.times

    def to_dict(self) -> Dict[str, List[str]]:
        return {"fechas": list(self.dates), "horas": list(self.times)}


@dataclass
class BookingResult:
    """
    Outcome of a driver run, tagged by status.

    Only the fields of the active variant are populated:
        opciones_disponibles: options, context
        no_disponible: reason
        success: booked_date, booked_time, substituted
        error: error_type, stage, diagnostics
    """

    status: BookingStatus
    message: str
    screenshot: Optional[str] = None
    options: Optional[AvailabilityOptions] = None
    context: Optional[ResumableContext] = None
    reason: Optional[UnavailableReason] = None
    specialty: Optional[str] = None
    booked_date: Optional[str] = None
    booked_time: Optional[str] = None
    substituted: bool = False
    error_type: Optional[str] = None
    stage: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)

    @classmethod
    def available(
        cls,
        options: AvailabilityOptions,
        context: Optional[ResumableContext],
        screenshot: Optional[str] = None,
        message: str = "Hay horas disponibles. Elige una fecha y hora.",
    ) -> "BookingResult":
        return cls(
            status=BookingStatus.OPCIONES_DISPONIBLES,
            message=message,
            screenshot=screenshot,
            options=options,
            context=context,
        )

    @classmethod
    def unavailable(
        cls, reason: UnavailableReason, screenshot: Optional[str] = None
    ) -> "BookingResult":
        return cls(
            status=BookingStatus.NO_DISPONIBLE,
            message="No hay horas disponibles para esta búsqueda.",
            screenshot=screenshot,
            reason=reason,
        )

    @classmethod
    def booked(
        cls,
        specialty: Optional[str],
        booked_date: Optional[str],
        booked_time: Optional[str],
        requested_date: Optional[str] = None,
        requested_time: Optional[str] = None,
        substituted: bool = False,
        screenshot: Optional[str] = None,
    ) -> "BookingResult":
        when = " ".join(part for part in (booked_date, booked_time) if part)
        message = f"¡Reserva completada exitosamente! Hora reservada: {when}."
        requested = " ".join(part for part in (requested_date, requested_time) if part)
        if substituted and requested:
            message += f" Lo solicitado ({requested}) ya no estaba disponible; se reservó {when}."
        return cls(
            status=BookingStatus.SUCCESS,
            message=message,
            screenshot=screenshot,
            specialty=specialty,
            booked_date=booked_date,
            booked_time=booked_time,
            substituted=substituted,
        )

    @classmethod
    def failure(
        cls,
        error: BaseException,
        stage: Optional[str] = None,
        screenshot: Optional[str] = None,
    ) -> "BookingResult":
        diagnostics = list(getattr(error, "diagnostics", []) or [])
        stage = getattr(error, "stage", None) or stage
        if isinstance(stage, Stage):
            stage = stage.value
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        return cls(
            status=BookingStatus.ERROR,
            message=f"No se pudo completar la reserva: {message}",
            screenshot=screenshot,
            error_type=type(error).__name__,
            stage=stage,
            diagnostics=diagnostics,
        )

    def to_dict(self, include_screenshot: bool = True) -> Dict[str, Any]:
        """Wire shape returned to callers."""
        data: Dict[str, Any] = {"status": self.status.value, "message": self.message}
        if include_screenshot:
            data["screenshot"] = self.screenshot

        if self.status == BookingStatus.OPCIONES_DISPONIBLES:
            data["opciones"] = (self.options or AvailabilityOptions()).to_dict()
            data["estado"] = self.context.to_dict() if self.context else None
        elif self.status == BookingStatus.NO_DISPONIBLE:
            data["reason"] = self.reason.value if self.reason else None
        elif self.status == BookingStatus.SUCCESS:
            data["datos"] = {
                "especialidad": self.specialty,
                "fecha": self.booked_date,
                "hora": self.booked_time,
                "sustituida": self.substituted,
            }
        else:
            data["error"] = {
                "type": self.error_type,
                "stage": self.stage,
                "diagnostics": list(self.diagnostics),
            }
        return data
