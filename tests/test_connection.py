import json

import pytest
from websockets.exceptions import ConnectionClosedError

from conftest import FakeWebSocket
from ticket_desk.channel import ChannelConnection, ChannelError


@pytest.mark.asyncio
async def test_emit_writes_event_envelope(connection):
    await connection.emit("join", {"ticketId": "T1"})
    assert json.loads(connection.ws.sent[0]) == {"type": "event", "event": "join", "payload": {"ticketId": "T1"}}


@pytest.mark.asyncio
async def test_emit_without_connection_raises():
    conn = ChannelConnection("ws://test/ws")
    with pytest.raises(ChannelError):
        await conn.emit("join", {"ticketId": "T1"})


@pytest.mark.asyncio
async def test_dispatch_runs_sync_and_async_handlers(connection):
    seen = []

    async def async_handler(payload):
        seen.append(("async", payload["n"]))

    connection.on("ping", lambda payload: seen.append(("sync", payload["n"])))
    connection.on("ping", async_handler)

    await connection.dispatch({"type": "event", "event": "ping", "payload": {"n": 1}})

    assert seen == [("sync", 1), ("async", 1)]


@pytest.mark.asyncio
async def test_failing_handler_does_not_block_others(connection):
    seen = []

    def broken(payload):
        raise RuntimeError("boom")

    connection.on("ping", broken)
    connection.on("ping", seen.append)

    await connection.dispatch({"type": "event", "event": "ping", "payload": {"n": 1}})

    assert seen == [{"n": 1}]


@pytest.mark.asyncio
async def test_malformed_frames_are_ignored(connection):
    seen = []
    connection.on("ping", seen.append)
    await connection.dispatch({"type": "res", "event": "ping", "payload": {}})
    await connection.dispatch({"type": "event", "event": "ping", "payload": "nope"})
    assert seen == []


@pytest.mark.asyncio
async def test_closed_socket_on_send_marks_connection_lost():
    class ClosingWebSocket(FakeWebSocket):
        async def send(self, data):
            raise ConnectionClosedError(None, None)

    conn = ChannelConnection("ws://test/ws")
    conn.ws = ClosingWebSocket()
    conn.connected = True
    lost = []
    conn.add_disconnect_listener(lambda: lost.append(True))

    with pytest.raises(ChannelError):
        await conn.emit("join", {"ticketId": "T1"})

    assert not conn.connected
    assert lost == [True]


@pytest.mark.asyncio
async def test_disconnect_closes_socket(connection):
    ws = connection.ws
    await connection.disconnect()
    assert ws.closed
    assert not connection.connected
