import logging
import threading
from typing import Set, Union

from fastapi import WebSocket, WebSocketDisconnect

from voice_relay.core.channel import Channel, WebSocketChannel
from voice_relay.core.registry import IdentityRegistry
from voice_relay.core.router import MessageRouter, RoutingOutcome
from voice_relay.core.session import ChannelSession
from voice_relay.utils.logger import safe_repr

logger = logging.getLogger(__name__)


class ConnectionLifecycleManager:
    """Owns the live channels and ties their lifetime to registry bindings."""

    def __init__(self, registry: IdentityRegistry, router: MessageRouter, outbox_size: int = 256):
        self.registry = registry
        self.router = router
        self.outbox_size = outbox_size
        self._sessions: Set[ChannelSession] = set()
        self._lock = threading.Lock()

    @property
    def live_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def open(self, channel: Channel) -> ChannelSession:
        session = ChannelSession(channel, self.registry)
        with self._lock:
            self._sessions.add(session)
        return session

    def handle(self, session: ChannelSession, raw: Union[str, bytes]) -> RoutingOutcome:
        if session.is_closed:
            raise RuntimeError("session is closed")
        return self.router.route(raw, session)

    def close(self, session: ChannelSession) -> None:
        """Move the session to Closed and release its identities. Always succeeds."""
        with self._lock:
            self._sessions.discard(session)
            session.release()

    async def serve(self, websocket: WebSocket) -> None:
        """Per-connection task: frames are handled strictly in arrival order."""
        await websocket.accept()
        channel = WebSocketChannel(websocket, outbox_size=self.outbox_size)
        channel.start()
        session = self.open(channel)
        logger.debug(f"Channel opened from {channel.peer}")

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                self.handle(session, raw)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"WebSocket error for {safe_repr(session.identity)}: {e}")
        finally:
            self.close(session)
            await channel.close()
            logger.debug(f"Channel from {channel.peer} closed")
