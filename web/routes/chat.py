"""Conversational booking routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from src.constants import LogEmoji
from src.core.enums import ChatIntent
from src.services.booking.interactive_orchestrator import InteractiveOrchestrator
from web.dependencies import get_orchestrator
from web.models.chat import ChatTurnRequest, ChatTurnResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])

GREETING = (
    "Hola, soy el asistente de reservas de RedSalud. "
    "Puedo ayudarte a agendar una hora médica."
)
NOT_HANDLED = (
    "Por ahora solo puedo agendar horas nuevas. "
    "Para anular o modificar una reserva, contacta directamente a RedSalud."
)


@router.post("/turn", response_model=ChatTurnResponse)
async def chat_turn(
    body: ChatTurnRequest,
    orchestrator: InteractiveOrchestrator = Depends(get_orchestrator),
) -> ChatTurnResponse:
    """
    Handle one structured conversation turn.

    Only "agendar" drives the portal; "hablar" gets a plain reply and
    "borrar"/"modificar" are reported as not handled.
    """
    logger.info(f"{LogEmoji.CHAT} Turn from {body.caller_id}: intent={body.intent.value}")

    if body.intent == ChatIntent.HABLAR:
        return ChatTurnResponse(caller_id=body.caller_id, intent=body.intent, prompt=GREETING)

    if body.intent in (ChatIntent.BORRAR, ChatIntent.MODIFICAR):
        return ChatTurnResponse(
            caller_id=body.caller_id, intent=body.intent, handled=False, prompt=NOT_HANDLED
        )

    if body.identity is None:
        raise HTTPException(status_code=422, detail="identity is required to book")

    turn = await orchestrator.handle_turn(
        body.caller_id, body.identity.to_identity(), **body.params
    )
    return ChatTurnResponse(
        caller_id=body.caller_id,
        intent=body.intent,
        prompt=turn.prompt,
        needs=turn.needs,
        result=turn.result.to_dict() if turn.result else None,
    )


@router.delete("/{caller_id}")
async def reset_conversation(
    caller_id: str,
    orchestrator: InteractiveOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Forget a caller's conversation."""
    return {"caller_id": caller_id, "reset": orchestrator.reset(caller_id)}
