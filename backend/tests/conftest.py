import json
from typing import List

import pytest

from voice_relay.core.channel import Channel
from voice_relay.core.config import Settings
from voice_relay.core.ledger import CallLedger
from voice_relay.core.lifecycle import ConnectionLifecycleManager
from voice_relay.core.registry import IdentityRegistry
from voice_relay.core.router import MessageRouter
from voice_relay.db.session import create_tables, make_engine, make_session_factory


class FakeChannel(Channel):
    """In-memory channel that records every frame handed to it."""

    def __init__(self, name: str = "fake", accept: bool = True):
        self.name = name
        self.accept = accept
        self.sent: List[str] = []
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, text: str) -> bool:
        if not self._open or not self.accept:
            return False
        self.sent.append(text)
        return True

    async def close(self) -> None:
        self._open = False

    def frames(self) -> List[dict]:
        return [json.loads(text) for text in self.sent]

    def __repr__(self) -> str:
        return f"<FakeChannel {self.name}>"


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", LOG_LEVEL="DEBUG")


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine):
    return CallLedger(make_session_factory(engine))


@pytest.fixture
def registry():
    return IdentityRegistry()


@pytest.fixture
def router(registry, ledger):
    return MessageRouter(registry, ledger)


@pytest.fixture
def lifecycle(registry, router):
    return ConnectionLifecycleManager(registry, router)


@pytest.fixture
def connect(lifecycle):
    """Open a session on a fresh fake channel, optionally registering it."""
    def _connect(identity=None, name=None):
        channel = FakeChannel(name or identity or "anon")
        session = lifecycle.open(channel)
        if identity is not None:
            lifecycle.handle(session, json.dumps({"type": "register", "from": identity}))
        return session, channel
    return _connect
