"""
Session coordinator: binds the selected ticket to a channel room and keeps
its transcript.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from ticket_desk.channel import ChannelError, ChannelSession
from ticket_desk.models import Message, SenderRole, Ticket, seed_transcript, utc_now_iso
from ticket_desk.protocol import InboundMessage, OutboundMessage
from ticket_desk.storage import TranscriptCache

logger = logging.getLogger("ticket_desk.coordinator")


class SessionCoordinator:
    """
    At most one ticket is active at a time. Switching tickets leaves the old
    room before the new one is joined, and the transcript is only ever
    appended to, in the order events are processed.

    Channel failures never raise out of the public operations; they are
    reported through `on_notice`.
    """

    def __init__(
        self,
        channel: ChannelSession,
        cache: TranscriptCache,
        *,
        persist_inbound: bool = False,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.channel = channel
        self.cache = cache
        self.persist_inbound = persist_inbound
        self._clock = clock

        self.ticket: Optional[Ticket] = None
        self.transcript: List[Message] = []
        self.minimized = False

        # Presentation hooks
        self.on_notice: Optional[Callable[[str], Any]] = None
        self.on_message: Optional[Callable[[str, Message], Any]] = None

        self._lock = asyncio.Lock()

        channel.on_user_message(self._handle_user_message)
        channel.on_support_message(self._handle_support_message)
        channel.on_disconnect(self._handle_disconnect)

    @property
    def active_ticket_id(self) -> Optional[str]:
        return self.ticket.ticket_id if self.ticket else None

    @property
    def connected(self) -> bool:
        """True when the active ticket's room is joined and sends are possible."""
        ticket_id = self.active_ticket_id
        return ticket_id is not None and self.channel.is_joined_to(ticket_id)

    async def select_ticket(self, ticket: Ticket) -> None:
        async with self._lock:
            if self.ticket is not None and self.ticket.ticket_id == ticket.ticket_id:
                self.minimized = False
                return

            await self._leave_current()

            self.ticket = ticket
            self.transcript = self._load_or_seed(ticket.ticket_id)
            self.minimized = False
            await self._join(ticket.ticket_id)

    async def deselect_ticket(self) -> None:
        async with self._lock:
            if self.ticket is None:
                return
            await self._leave_current()
            self.ticket = None
            self.transcript = []
            self.minimized = False

    async def rejoin(self) -> bool:
        """Join the active ticket's room again after a channel failure."""
        async with self._lock:
            if self.ticket is None:
                return False
            if self.connected:
                return True
            return await self._join(self.ticket.ticket_id)

    def toggle_minimized(self) -> bool:
        if self.ticket is not None:
            self.minimized = not self.minimized
        return self.minimized

    def receive_inbound(self, role: str, text: str, time: Optional[str] = None) -> Optional[Message]:
        """
        Append a delivered message to the active transcript.
        Nothing is recorded when no ticket is selected or the role is unknown.
        """
        if self.ticket is None:
            return None
        if role not in SenderRole.ALL:
            logger.warning("dropping message with unknown sender role %r", role)
            return None
        message = Message(sender=role, text=text, time=time)
        self.transcript.append(message)
        if self.persist_inbound:
            self._persist(self.ticket.ticket_id)
        self._publish(message)
        return message

    async def send_outbound(self, text: str) -> Optional[Message]:
        """
        Send an agent message to the active ticket's customer.

        Blank text or no selected ticket is a silent no-op. If the channel
        write fails nothing is recorded and a notice is raised instead.
        """
        body = (text or "").strip()
        if not body or self.ticket is None:
            return None

        async with self._lock:
            if self.ticket is None:
                return None
            ticket_id = self.ticket.ticket_id

            if not self.channel.is_joined_to(ticket_id):
                self._notify(f"Chat for ticket {ticket_id} is offline; rejoin before sending.")
                return None

            timestamp = self._clock()
            try:
                await self.channel.send(OutboundMessage(ticketId=ticket_id, message=body, timestamp=timestamp))
            except ChannelError as e:
                logger.error("send to ticket %s failed: %s", ticket_id, e)
                self._notify(f"Message not sent: {e}")
                return None

            message = Message(sender=SenderRole.SUPPORT, text=body, time=timestamp)
            self.transcript.append(message)
            self._persist(ticket_id)
            self._publish(message)
            return message

    def _load_or_seed(self, ticket_id: str) -> List[Message]:
        stored = self.cache.load(ticket_id)
        if stored is None:
            logger.debug("no cached transcript for %s, seeding", ticket_id)
            return seed_transcript()
        return list(stored)

    def _persist(self, ticket_id: str) -> None:
        try:
            self.cache.save(ticket_id, list(self.transcript))
        except OSError as e:
            logger.error("could not cache transcript for %s: %s", ticket_id, e)
            self._notify(f"Transcript for ticket {ticket_id} was not saved locally.")

    async def _join(self, ticket_id: str) -> bool:
        try:
            await self.channel.join(ticket_id)
        except ChannelError as e:
            logger.error("join ticket %s failed: %s", ticket_id, e)
            self._notify(f"Could not connect to chat for ticket {ticket_id}: {e}")
            return False
        return True

    async def _leave_current(self) -> None:
        ticket_id = self.active_ticket_id
        if ticket_id is None or not self.channel.is_joined_to(ticket_id):
            return
        try:
            await self.channel.leave(ticket_id)
        except ChannelError as e:
            logger.warning("leave ticket %s failed: %s", ticket_id, e)
            self._notify(f"Could not leave chat for ticket {ticket_id}: {e}")

    def _handle_user_message(self, event: InboundMessage) -> None:
        self._accept(event, SenderRole.USER)

    def _handle_support_message(self, event: InboundMessage) -> None:
        self._accept(event, SenderRole.SUPPORT)

    def _accept(self, event: InboundMessage, role: str) -> None:
        if event.ticketId != self.active_ticket_id:
            return
        self.receive_inbound(role, event.message, event.timestamp)

    def _handle_disconnect(self) -> None:
        if self.ticket is not None:
            self._notify(f"Connection lost; chat for ticket {self.ticket.ticket_id} is offline until you rejoin.")

    def _notify(self, text: str) -> None:
        if self.on_notice:
            self.on_notice(text)

    def _publish(self, message: Message) -> None:
        if self.on_message and self.ticket is not None:
            self.on_message(self.ticket.ticket_id, message)
