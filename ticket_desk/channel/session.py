"""
Room-scoped view over the shared channel connection.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ticket_desk.channel.connection import ChannelConnection, ChannelError, call_handler
from ticket_desk.protocol import EventName, InboundMessage, OutboundMessage, RoomParams

logger = logging.getLogger("ticket_desk.channel")

MessageHandler = Callable[[InboundMessage], Any]


class ChannelStateError(ChannelError):
    """Raised on an illegal join/leave/send for the current state."""


class ChannelState:
    IDLE = "idle"
    JOINED = "joined"


class ChannelSession:
    """
    Subscription to exactly one ticket room at a time.

    State machine: idle -> joined(ticket) -> idle. Moving straight from one
    joined ticket to another is refused; callers leave first.

    Inbound deliveries are filtered here: a handler only sees events whose
    ticketId is the joined ticket, so anything arriving after leave() is dropped.
    """

    def __init__(self, connection: ChannelConnection):
        self.connection = connection
        self.state = ChannelState.IDLE
        self.ticket_id: Optional[str] = None

        self._user_handlers: List[MessageHandler] = []
        self._support_handlers: List[MessageHandler] = []
        self._disconnect_handlers: List[Callable[[], Any]] = []

        connection.on(EventName.USER_MESSAGE, self._on_user_frame)
        connection.on(EventName.AGENT_MESSAGE, self._on_agent_frame)
        connection.add_disconnect_listener(self._on_connection_lost)

    @property
    def joined(self) -> bool:
        return self.state == ChannelState.JOINED

    def is_joined_to(self, ticket_id: str) -> bool:
        return self.joined and self.ticket_id == ticket_id

    def on_user_message(self, handler: MessageHandler) -> None:
        self._user_handlers.append(handler)

    def on_support_message(self, handler: MessageHandler) -> None:
        self._support_handlers.append(handler)

    def on_disconnect(self, handler: Callable[[], Any]) -> None:
        self._disconnect_handlers.append(handler)

    async def join(self, ticket_id: str) -> None:
        if self.joined:
            if self.ticket_id == ticket_id:
                return
            raise ChannelStateError(
                f"already joined ticket {self.ticket_id}; leave it before joining {ticket_id}"
            )
        await self.connection.emit(EventName.JOIN, RoomParams(ticketId=ticket_id).model_dump())
        self.ticket_id = ticket_id
        self.state = ChannelState.JOINED
        logger.info("joined ticket %s", ticket_id)

    async def leave(self, ticket_id: str) -> None:
        """
        Stop delivering events for ticket_id.
        Interest is dropped locally before the leave frame is written, so a
        failed write still leaves the session idle.
        """
        if not self.is_joined_to(ticket_id):
            return
        self.state = ChannelState.IDLE
        self.ticket_id = None
        logger.info("left ticket %s", ticket_id)
        await self.connection.emit(EventName.LEAVE, RoomParams(ticketId=ticket_id).model_dump())

    async def send(self, message: OutboundMessage) -> None:
        if not self.is_joined_to(message.ticketId):
            raise ChannelStateError(f"not joined to ticket {message.ticketId}")
        await self.connection.emit(EventName.MESSAGE, message.model_dump())

    async def _on_user_frame(self, payload: Dict[str, Any]) -> None:
        await self._deliver(payload, self._user_handlers)

    async def _on_agent_frame(self, payload: Dict[str, Any]) -> None:
        await self._deliver(payload, self._support_handlers)

    async def _deliver(self, payload: Dict[str, Any], handlers: List[MessageHandler]) -> None:
        try:
            event = InboundMessage.model_validate(payload)
        except ValidationError as e:
            logger.warning("dropping malformed inbound event: %s", e)
            return

        if not self.is_joined_to(event.ticketId):
            logger.debug("dropping event for ticket %s (joined: %s)", event.ticketId, self.ticket_id)
            return

        for handler in list(handlers):
            await call_handler(handler, event)

    async def _on_connection_lost(self) -> None:
        if self.joined:
            logger.warning("connection lost while joined to ticket %s", self.ticket_id)
        self.state = ChannelState.IDLE
        self.ticket_id = None
        for handler in list(self._disconnect_handlers):
            await call_handler(handler)
