"""Conversational turn models for RedSalud-Bot web application."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from src.core.enums import ChatIntent

from .booking import IdentityModel


class ChatTurnRequest(BaseModel):
    """One structured turn of a conversation."""

    caller_id: str = Field(min_length=1, max_length=128)
    intent: ChatIntent = ChatIntent.AGENDAR
    identity: Optional[IdentityModel] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None  # Free text for "hablar"


class ChatTurnResponse(BaseModel):
    """Reply to one turn."""

    caller_id: str
    intent: ChatIntent
    handled: bool = True
    prompt: str
    needs: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
