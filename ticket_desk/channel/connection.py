"""
Shared WebSocket connection to the real-time channel server.
"""
import asyncio
import inspect
import json
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ticket_desk.protocol import create_frame

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Any]


class ChannelError(RuntimeError):
    pass


async def call_handler(handler: Callable[..., Any], *args: Any) -> None:
    """Run a sync or async callback."""
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class ChannelConnection:
    """
    One long-lived connection shared by every component of the console.

    Frames are JSON objects {"type": "event", "event": name, "payload": {...}}.
    Handlers are registered per event name and stay registered for the
    lifetime of the connection.
    """

    def __init__(self, uri: str = "ws://localhost:3000/ws"):
        self.uri = uri
        self.ws: Optional[Any] = None
        self.connected = False

        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._disconnect_listeners: List[Callable[[], Any]] = []
        self._receive_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """Open the socket. Also used to reconnect after the connection was lost."""
        if self.connected:
            return
        await self._close_socket()
        try:
            self.ws = await websockets.connect(self.uri)
        except (OSError, WebSocketException) as e:
            self.connected = False
            logger.error(f"Connection error: {e}")
            raise ChannelError(f"could not connect to {self.uri}: {e}") from e

        self.connected = True
        logger.info(f"Connected to {self.uri}")
        self._receive_task = asyncio.create_task(self._receive_loop())

    async def disconnect(self) -> None:
        self.connected = False
        if await self._close_socket():
            logger.info("Disconnected from channel")

    async def _close_socket(self) -> bool:
        if self._receive_task:
            self._receive_task.cancel()
            self._receive_task = None
        if not self.ws:
            return False
        ws, self.ws = self.ws, None
        await ws.close()
        return True

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def add_disconnect_listener(self, listener: Callable[[], Any]) -> None:
        self._disconnect_listeners.append(listener)

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """
        Write one frame. Fire-and-forget: no acknowledgement is awaited.
        Raises ChannelError when the connection is down or the write fails.
        """
        if not self.connected or not self.ws:
            raise ChannelError("not connected to channel")

        frame = create_frame(event, payload)
        try:
            await self.ws.send(json.dumps(frame, ensure_ascii=False))
        except ConnectionClosed as e:
            await self._mark_lost()
            raise ChannelError(f"connection closed while sending {event}") from e
        logger.debug("emitted %s %s", event, payload)

    async def dispatch(self, frame: Dict[str, Any]) -> None:
        """Deliver a decoded frame to the handlers registered for its event name."""
        if frame.get("type") != "event":
            return
        event = frame.get("event")
        payload = frame.get("payload")
        if not isinstance(event, str) or not isinstance(payload, dict):
            logger.warning("dropping malformed frame: %s", frame)
            return

        for handler in list(self._handlers.get(event, [])):
            try:
                await call_handler(handler, payload)
            except Exception:
                logger.exception("handler for %s failed", event)

    async def _receive_loop(self) -> None:
        """Background task to receive frames from the channel server."""
        try:
            while self.connected and self.ws:
                try:
                    data = await self.ws.recv()
                    frame = json.loads(data)
                except ConnectionClosed:
                    logger.info("Connection closed by channel server")
                    await self._mark_lost()
                    break
                except json.JSONDecodeError as e:
                    logger.warning(f"Ignoring non-JSON frame: {e}")
                    continue
                if isinstance(frame, dict):
                    await self.dispatch(frame)
        except asyncio.CancelledError:
            logger.debug("Receive loop cancelled")

    async def _mark_lost(self) -> None:
        if not self.connected:
            return
        self.connected = False
        for listener in list(self._disconnect_listeners):
            try:
                await call_handler(listener)
            except Exception:
                logger.exception("disconnect listener failed")
