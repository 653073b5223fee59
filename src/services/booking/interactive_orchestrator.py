"""Turn-by-turn booking dialogue on top of the session driver.

Each turn that adds information replays a fresh session from the first stage
up to the stage that consumes the new parameter. What the portal has accepted
is kept per caller in a ConversationStore.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from src.constants import DEFAULT_SERVICE, LogEmoji
from src.core.config.settings import BotSettings, get_settings

from ...core.enums import BookingStatus, Stage
from ...core.exceptions import ValidationError
from ...models.booking import AvailabilityOptions, BookingRequest, BookingResult, Identity
from .conversation_store import ConversationState, ConversationStore
from .session_driver import SessionDriver

# Collection order; changing a field invalidates every field after it
FIELD_ORDER: List[str] = ["service", "specialty", "location", "date", "time"]
ACCEPTED_PARAMS = set(FIELD_ORDER) | {"doctor", "phone", "email"}
CONTACT = "contact"

PROMPTS: Dict[str, str] = {
    "service": f"¿Qué tipo de atención necesitas? (por ejemplo, {DEFAULT_SERVICE})",
    "specialty": "¿Qué especialidad necesitas?",
    "location": "¿En qué sede o comuna prefieres atenderte?",
    "date": "¿Qué fecha prefieres?",
    "time": "¿A qué hora prefieres?",
    CONTACT: "Para confirmar la reserva necesito tu teléfono y tu correo.",
}

# Next missing field -> stage a replay runs to. Missing location or contact
# details give nothing new to validate.
RUN_TARGETS: Dict[Optional[str], Stage] = {
    "specialty": Stage.SELECT_SERVICE,
    "date": Stage.WAIT_AVAILABILITY,
    "time": Stage.SELECT_DATE,
    None: Stage.DONE,
}

# Failed stage -> field asked for again. Navigation and identification
# failures keep every field.
RETRY_FIELDS: Dict[str, str] = {
    Stage.SELECT_SERVICE.value: "service",
    Stage.SEARCH_SPECIALTY_LOCATION.value: "specialty",
    Stage.WAIT_AVAILABILITY.value: "specialty",
    Stage.SELECT_DATE.value: "date",
    Stage.SELECT_TIME.value: "time",
    Stage.ACCEPT_TERMS.value: "time",
    Stage.FILL_CONTACT.value: CONTACT,
    Stage.SUBMIT_RESERVATION.value: "time",
}

DriverFactory = Callable[..., SessionDriver]


@dataclass
class TurnResult:
    """Reply to one conversational turn."""

    result: Optional[BookingResult]
    needs: Optional[str]
    prompt: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict() if self.result else None,
            "needs": self.needs,
            "prompt": self.prompt,
        }


class InteractiveOrchestrator:
    """Collect booking parameters across turns and drive the portal as they arrive."""

    def __init__(
        self,
        store: Optional[ConversationStore] = None,
        settings: Optional[BotSettings] = None,
        driver_factory: DriverFactory = SessionDriver,
        **driver_options: Any,
    ):
        """
        Initialize interactive orchestrator.

        Args:
            store: Conversation store (defaults to one sized from settings)
            settings: Application settings (defaults to the global settings)
            driver_factory: Builds a SessionDriver for a request
            **driver_options: Extra keyword arguments for every driver
        """
        self.settings = settings or get_settings()
        self.store = store or ConversationStore(
            ttl_seconds=self.settings.conversation_ttl_seconds,
            max_entries=self.settings.conversation_max_entries,
        )
        self.driver_factory = driver_factory
        self.driver_options = {"settings": self.settings, **driver_options}

    def reset(self, caller_id: str) -> bool:
        """Forget a caller's conversation. Returns True if there was one."""
        dropped = self.store.delete(caller_id)
        if dropped:
            logger.info(f"Conversation for {caller_id} reset")
        return dropped

    async def handle_turn(self, caller_id: str, identity: Identity, **params: Any) -> TurnResult:
        """
        Merge a turn's parameters and advance the booking as far as they allow.

        Args:
            caller_id: Stable id of the conversation
            identity: Patient identification
            **params: Any of service, specialty, location, date, time, doctor,
                phone, email

        Returns:
            TurnResult with the run result (if a run happened), the next
            missing field and the prompt for it

        Raises:
            ValidationError: If an unknown parameter is supplied
        """
        unknown = set(params) - ACCEPTED_PARAMS
        if unknown:
            raise ValidationError(
                f"Unknown booking parameter(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        state = self.store.get(caller_id) or ConversationState()
        changed = self._merge(state, params)
        needs = self._next_missing(state)

        target = self._target_stage(needs) if changed else None
        if target is None:
            self.store.put(caller_id, state)
            return TurnResult(result=None, needs=needs, prompt=self._prompt(needs, state))

        logger.info(f"{LogEmoji.RETRY} Turn for {caller_id}: replaying until {target.value}")
        driver = self.driver_factory(self._request(identity, state), **self.driver_options)
        result = await driver.run(until=target)
        return self._apply_result(caller_id, state, target, result)

    # ------------------------------------------------------------------ internals

    def _merge(self, state: ConversationState, params: Dict[str, Any]) -> bool:
        changed = False
        for name in FIELD_ORDER:
            value = params.get(name)
            if value is None or value == getattr(state, name):
                continue
            setattr(state, name, value)
            self._invalidate_after(state, name)
            changed = True

        extra_changed = False
        for name in ("doctor", "phone", "email"):
            value = params.get(name)
            if value is not None and value != getattr(state, name):
                setattr(state, name, value)
                extra_changed = True
        # Doctor and contact details are only consumed by the booking run
        return changed or (extra_changed and state.time is not None)

    def _invalidate_after(self, state: ConversationState, name: str) -> None:
        index = FIELD_ORDER.index(name)
        for later in FIELD_ORDER[index + 1 :]:
            setattr(state, later, None)
        if index <= FIELD_ORDER.index("location"):
            state.context = None
            state.options = AvailabilityOptions()

    def _next_missing(self, state: ConversationState) -> Optional[str]:
        for name in FIELD_ORDER:
            if not getattr(state, name):
                return name
        if not (state.phone and state.email):
            return CONTACT
        return None

    def _target_stage(self, needs: Optional[str]) -> Optional[Stage]:
        """Stage consuming the most advanced parameter now known, if any."""
        return RUN_TARGETS.get(needs)

    def _request(self, identity: Identity, state: ConversationState) -> BookingRequest:
        return BookingRequest(
            document_type=identity.document_type,
            document_number=identity.document_number,
            service=state.service or DEFAULT_SERVICE,
            specialty=state.specialty,
            location=state.location,
            date=state.date,
            time=state.time,
            doctor=state.doctor,
            phone=state.phone,
            email=state.email,
        )

    def _apply_result(
        self,
        caller_id: str,
        state: ConversationState,
        target: Stage,
        result: BookingResult,
    ) -> TurnResult:
        if result.status == BookingStatus.SUCCESS:
            self.store.delete(caller_id)
            return TurnResult(result=result, needs=None, prompt=result.message)

        if result.status == BookingStatus.OPCIONES_DISPONIBLES:
            state.context = result.context
            if result.options is not None and not result.options.is_empty():
                state.options = result.options
            self.store.put(caller_id, state)
            needs = self._next_missing(state)
            return TurnResult(result=result, needs=needs, prompt=self._prompt(needs, state))

        if result.status == BookingStatus.NO_DISPONIBLE:
            # Nothing left on that date: ask for another one; otherwise another search
            needs = "date" if target == Stage.SELECT_DATE else "specialty"
            setattr(state, needs, None)
            self._invalidate_after(state, needs)
            self.store.put(caller_id, state)
            return TurnResult(
                result=result, needs=needs, prompt=f"{result.message} {PROMPTS[needs]}"
            )

        # Error: keep what was accepted before and ask again for what the failed stage used
        needs = RETRY_FIELDS.get(result.stage or "")
        if needs == CONTACT:
            state.phone = state.email = None
        elif needs is not None:
            setattr(state, needs, None)
            self._invalidate_after(state, needs)
        else:
            needs = self._next_missing(state)
        self.store.put(caller_id, state)
        return TurnResult(
            result=result, needs=needs, prompt=f"{result.message} {self._prompt(needs, state)}"
        )

    def _prompt(self, needs: Optional[str], state: ConversationState) -> str:
        if needs is None:
            return "Tengo todos los datos para tu reserva."
        prompt = PROMPTS[needs]
        if needs == "date" and state.options.dates:
            prompt += " Fechas disponibles: " + ", ".join(state.options.dates) + "."
        elif needs == "time" and state.options.times:
            prompt += " Horas disponibles: " + ", ".join(state.options.times) + "."
        return prompt
