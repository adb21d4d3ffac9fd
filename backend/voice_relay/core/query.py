from typing import List, Optional

from voice_relay.core.ledger import CallLedger
from voice_relay.core.registry import IdentityRegistry
from voice_relay.schemas.call import CallRecord


class QuerySurface:
    """Read-only view over the ledger and registry for the HTTP API."""

    def __init__(self, registry: IdentityRegistry, ledger: CallLedger):
        self._registry = registry
        self._ledger = ledger

    def get_calls_by_user(self, identity: str, limit: Optional[int] = None) -> List[CallRecord]:
        return self._ledger.recent_calls(identity, limit)

    def get_live_count(self) -> int:
        return len(self._registry)
