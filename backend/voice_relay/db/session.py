from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Build the ledger engine.

    SQLite URLs get a single shared connection so an in-memory database
    is visible to every session and every thread of the process.
    """
    db_url_lower = database_url.lower()
    is_sqlite = db_url_lower.startswith("sqlite")

    kwargs = {"pool_pre_ping": True, "echo": False}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False so rows can be read after the session is closed
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Import models so they register with Base.metadata
    from voice_relay.models import call  # noqa: F401

    Base.metadata.create_all(bind=engine)
