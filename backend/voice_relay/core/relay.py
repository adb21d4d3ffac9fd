import logging

from voice_relay.core.config import Settings
from voice_relay.core.ledger import CallLedger
from voice_relay.core.lifecycle import ConnectionLifecycleManager
from voice_relay.core.query import QuerySurface
from voice_relay.core.registry import IdentityRegistry
from voice_relay.core.router import MessageRouter
from voice_relay.db.session import create_tables, make_engine, make_session_factory

logger = logging.getLogger(__name__)


class SignalingRelay:
    """Wires registry, ledger, router, lifecycle and query surface together.

    One instance per application; tests build their own.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = make_engine(settings.DATABASE_URL)
        create_tables(self.engine)
        self.registry = IdentityRegistry()
        self.ledger = CallLedger(make_session_factory(self.engine), history_limit=settings.CALL_HISTORY_LIMIT)
        self.router = MessageRouter(self.registry, self.ledger)
        self.lifecycle = ConnectionLifecycleManager(self.registry, self.router, outbox_size=settings.OUTBOX_SIZE)
        self.query = QuerySurface(self.registry, self.ledger)

    def shutdown(self) -> None:
        self.engine.dispose()
        logger.info("Signaling relay stopped")
