import asyncio
import json
from typing import Any, Dict, List

import pytest

from ticket_desk.channel import ChannelConnection, ChannelSession
from ticket_desk.coordinator import SessionCoordinator
from ticket_desk.models import Ticket
from ticket_desk.storage import InMemoryTranscriptCache


class FakeWebSocket:
    """Stands in for a connected websockets client; records every frame written."""

    def __init__(self):
        self.sent: List[str] = []
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def recv(self) -> str:
        # Frames are fed through ChannelConnection.dispatch in tests.
        await asyncio.Event().wait()

    async def close(self) -> None:
        self.closed = True


def sent_frames(connection: ChannelConnection) -> List[Dict[str, Any]]:
    return [json.loads(raw) for raw in connection.ws.sent]


def user_frame(ticket_id: str, message: str, timestamp: str = "2024-05-01T10:00:00Z") -> Dict[str, Any]:
    return {
        "type": "event",
        "event": "user-message",
        "payload": {"ticketId": ticket_id, "message": message, "timestamp": timestamp},
    }


def agent_frame(ticket_id: str, message: str, timestamp: str = "2024-05-01T10:00:00Z") -> Dict[str, Any]:
    return {
        "type": "event",
        "event": "agent-message",
        "payload": {"ticketId": ticket_id, "message": message, "timestamp": timestamp},
    }


def make_ticket(ticket_id: str, created_at: str = "2024-05-01T09:00:00Z", status: str = "waiting for response") -> Ticket:
    return Ticket(
        ticket_id=ticket_id,
        issue=f"issue {ticket_id}",
        status=status,
        user_message="help",
        created_at=created_at,
        updated_at=created_at,
        user_name="Dana",
        mobile_number="555-0100",
    )


@pytest.fixture
def connection() -> ChannelConnection:
    conn = ChannelConnection("ws://test/ws")
    conn.ws = FakeWebSocket()
    conn.connected = True
    return conn


@pytest.fixture
def channel(connection) -> ChannelSession:
    return ChannelSession(connection)


@pytest.fixture
def cache() -> InMemoryTranscriptCache:
    return InMemoryTranscriptCache()


@pytest.fixture
def notices() -> List[str]:
    return []


@pytest.fixture
def coordinator(channel, cache, notices) -> SessionCoordinator:
    coord = SessionCoordinator(channel, cache, clock=lambda: "2024-05-01T12:00:00Z")
    coord.on_notice = notices.append
    return coord
