import logging
from enum import Enum
from typing import List, Optional

from voice_relay.core.channel import Channel
from voice_relay.core.registry import IdentityRegistry
from voice_relay.utils.logger import safe_repr

logger = logging.getLogger(__name__)


class ChannelState(str, Enum):
    unbound = "unbound"
    bound = "bound"
    closed = "closed"


class ChannelSession:
    """Per-connection state: Unbound -> Bound(identity) -> Closed."""

    def __init__(self, channel: Channel, registry: IdentityRegistry):
        self.channel = channel
        self._registry = registry
        self.state = ChannelState.unbound
        self.identity: Optional[str] = None
        # Every identity this channel has claimed, oldest first
        self._claimed: List[str] = []

    @property
    def is_bound(self) -> bool:
        return self.state == ChannelState.bound

    @property
    def is_closed(self) -> bool:
        return self.state == ChannelState.closed

    @property
    def claimed(self) -> List[str]:
        return list(self._claimed)

    def bind(self, identity: str) -> bool:
        """Claim identity for this channel.

        Used for explicit ``register`` frames and for the implicit binding
        done by the first frame carrying ``from``. Rebinding to another
        identity leaves the earlier claim in the registry until close.
        """
        if self.is_closed:
            return False
        self._registry.bind(identity, self.channel)
        if identity not in self._claimed:
            self._claimed.append(identity)
        if self.identity != identity:
            logger.info(f"User {safe_repr(identity)} connected")
        self.identity = identity
        self.state = ChannelState.bound
        return True

    def release(self) -> List[str]:
        """Move to Closed and drop every claim this channel still holds.

        Returns the identities actually removed from the registry.
        """
        if self.is_closed:
            return []
        self.state = ChannelState.closed
        released = [
            identity for identity in self._claimed
            if self._registry.unbind(identity, self.channel)
        ]
        for identity in released:
            logger.info(f"User {safe_repr(identity)} disconnected")
        return released

    def __repr__(self) -> str:
        return f"<ChannelSession {self.state.value} identity={self.identity!r}>"
