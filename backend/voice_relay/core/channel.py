import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Channel:
    """What the relay needs from a client transport.

    ``send`` is a non-blocking handoff: it either queues the frame and
    returns True, or returns False when the frame cannot be delivered.
    """

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    def send(self, text: str) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class WebSocketChannel(Channel):
    """Channel over a FastAPI WebSocket with a bounded outbox.

    A writer task drains the outbox in FIFO order so a slow reader never
    stalls the task that produced the frame.
    """

    def __init__(self, websocket: WebSocket, outbox_size: int = 256):
        self.websocket = websocket
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._open = True
        self._writer: Optional[asyncio.Task] = None
        client = websocket.client
        self.peer = f"{client.host}:{client.port}" if client else "unknown"

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, text: str) -> bool:
        if not self._open:
            return False
        try:
            self._outbox.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for {self.peer}, dropping frame")
            return False
        return True

    async def _drain(self) -> None:
        while self._open:
            text = await self._outbox.get()
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                logger.error(f"Write to {self.peer} failed: {e}")
                self._open = False

    async def close(self) -> None:
        self._open = False
        if self._writer is not None:
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None

    def __repr__(self) -> str:
        return f"<WebSocketChannel {self.peer} open={self._open}>"
