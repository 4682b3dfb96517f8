import pytest

from conftest import agent_frame, sent_frames, user_frame
from ticket_desk.channel import ChannelError, ChannelState, ChannelStateError
from ticket_desk.protocol import OutboundMessage


@pytest.mark.asyncio
async def test_join_emits_join_frame(channel, connection):
    await channel.join("T1")

    assert channel.state == ChannelState.JOINED
    assert channel.is_joined_to("T1")
    assert sent_frames(connection) == [{"type": "event", "event": "join", "payload": {"ticketId": "T1"}}]


@pytest.mark.asyncio
async def test_join_same_ticket_twice_is_a_no_op(channel, connection):
    await channel.join("T1")
    await channel.join("T1")
    assert len(connection.ws.sent) == 1


@pytest.mark.asyncio
async def test_joined_to_joined_transition_is_refused(channel):
    await channel.join("A")
    with pytest.raises(ChannelStateError):
        await channel.join("B")
    assert channel.is_joined_to("A")


@pytest.mark.asyncio
async def test_leave_then_join_other_ticket(channel, connection):
    await channel.join("A")
    await channel.leave("A")
    assert channel.state == ChannelState.IDLE
    await channel.join("B")

    assert [f["event"] for f in sent_frames(connection)] == ["join", "leave", "join"]


@pytest.mark.asyncio
async def test_leave_for_unjoined_ticket_is_a_no_op(channel, connection):
    await channel.join("A")
    await channel.leave("B")
    assert channel.is_joined_to("A")
    assert len(connection.ws.sent) == 1


@pytest.mark.asyncio
async def test_failed_join_stays_idle(channel, connection):
    connection.connected = False
    with pytest.raises(ChannelError):
        await channel.join("T1")
    assert channel.state == ChannelState.IDLE
    assert channel.ticket_id is None


@pytest.mark.asyncio
async def test_failed_leave_still_drops_interest(channel, connection):
    received = []
    channel.on_user_message(received.append)
    await channel.join("T1")
    connection.connected = False

    with pytest.raises(ChannelError):
        await channel.leave("T1")

    assert channel.state == ChannelState.IDLE
    await connection.dispatch(user_frame("T1", "late"))
    assert received == []


@pytest.mark.asyncio
async def test_handlers_only_see_joined_ticket(channel, connection):
    users, agents = [], []
    channel.on_user_message(users.append)
    channel.on_support_message(agents.append)
    await channel.join("T1")

    await connection.dispatch(user_frame("T1", "mine"))
    await connection.dispatch(user_frame("T2", "not mine"))
    await connection.dispatch(agent_frame("T1", "echo"))

    assert [e.message for e in users] == ["mine"]
    assert [e.message for e in agents] == ["echo"]


@pytest.mark.asyncio
async def test_events_before_join_are_dropped(channel, connection):
    received = []
    channel.on_user_message(received.append)
    await connection.dispatch(user_frame("T1", "early"))
    assert received == []


@pytest.mark.asyncio
async def test_numeric_ticket_ids_match(channel, connection):
    received = []
    channel.on_user_message(received.append)
    await channel.join("42")

    frame = user_frame("42", "hi")
    frame["payload"]["ticketId"] = 42
    await connection.dispatch(frame)

    assert [e.ticketId for e in received] == ["42"]


@pytest.mark.asyncio
async def test_malformed_inbound_is_dropped(channel, connection):
    received = []
    channel.on_user_message(received.append)
    await channel.join("T1")

    await connection.dispatch({"type": "event", "event": "user-message", "payload": {"ticketId": "T1"}})

    assert received == []


@pytest.mark.asyncio
async def test_send_requires_joined_ticket(channel):
    message = OutboundMessage(ticketId="T1", message="hi", timestamp="2024-05-01T12:00:00Z")
    with pytest.raises(ChannelStateError):
        await channel.send(message)

    await channel.join("T2")
    with pytest.raises(ChannelStateError):
        await channel.send(message)


@pytest.mark.asyncio
async def test_connection_loss_returns_to_idle(channel, connection):
    lost = []
    channel.on_disconnect(lambda: lost.append(True))
    await channel.join("T1")

    await connection._mark_lost()

    assert channel.state == ChannelState.IDLE
    assert lost == [True]
