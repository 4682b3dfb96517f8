from .connection import ChannelConnection, ChannelError
from .session import ChannelSession, ChannelState, ChannelStateError

__all__ = [
    "ChannelConnection",
    "ChannelError",
    "ChannelSession",
    "ChannelState",
    "ChannelStateError",
]
