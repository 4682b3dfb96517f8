"""
Channel wire protocol: event names, frame envelope and payload models.
"""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class EventName:
    # agent -> channel
    JOIN = "join"
    LEAVE = "leave"
    MESSAGE = "message"
    # channel -> agent
    USER_MESSAGE = "user-message"
    AGENT_MESSAGE = "agent-message"


class Frame(BaseModel):
    """Envelope for every frame on the channel."""
    type: Literal["event"] = "event"
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class RoomParams(BaseModel):
    """Payload for join and leave."""
    ticketId: str


class OutboundMessage(BaseModel):
    """Payload for a message sent by the agent."""
    ticketId: str
    sender: Literal["support"] = "support"
    message: str
    timestamp: str


class InboundMessage(BaseModel):
    """Payload for user-message and agent-message deliveries."""
    ticketId: str
    message: str
    timestamp: Optional[str] = None

    # Some backends send numeric ticket ids.
    @field_validator("ticketId", mode="before")
    @classmethod
    def _ticket_id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


def create_frame(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return Frame(event=event, payload=payload).model_dump()
