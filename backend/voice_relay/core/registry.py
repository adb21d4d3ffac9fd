import logging
import threading
from typing import Dict, Optional

from voice_relay.core.channel import Channel
from voice_relay.utils.logger import safe_repr

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Maps each logical identity to the channel currently speaking for it.

    The registry never owns channels; it only remembers which one is the
    latest to claim an identity. Last registration wins.
    """

    def __init__(self):
        # {identity: channel}
        self._bindings: Dict[str, Channel] = {}
        self._lock = threading.Lock()

    def bind(self, identity: str, channel: Channel) -> Optional[Channel]:
        """Associate identity with channel and return the displaced channel, if any.

        The displaced channel is not notified.
        """
        with self._lock:
            previous = self._bindings.get(identity)
            self._bindings[identity] = channel
        if previous is not None and previous is not channel:
            logger.info(f"Identity {safe_repr(identity)} rebound to a new channel")
        return previous

    def resolve(self, identity: str) -> Optional[Channel]:
        with self._lock:
            return self._bindings.get(identity)

    def unbind(self, identity: str, channel: Optional[Channel] = None) -> bool:
        """Remove the binding for identity.

        When ``channel`` is given the binding is only removed if it still
        points at that channel, so a stale close never clears a newer
        connection. Returns True if something was removed.
        """
        with self._lock:
            current = self._bindings.get(identity)
            if current is None:
                return False
            if channel is not None and current is not channel:
                return False
            del self._bindings[identity]
            return True

    def is_bound(self, identity: str) -> bool:
        with self._lock:
            return identity in self._bindings

    def identities(self):
        with self._lock:
            return sorted(self._bindings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)
