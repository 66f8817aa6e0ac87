"""Engine and session lifecycle for the match result store."""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine(database_url: str) -> Engine:
    """(Re)bind the module engine. Safe to call again with a new URL."""
    global _engine, _session_factory
    dispose_engine()

    connect_args = {}
    if database_url.startswith("sqlite"):
        # Route handlers run in the FastAPI threadpool.
        connect_args["check_same_thread"] = False

    _engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine is not initialized")
    return _engine


def get_sessionmaker() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Database sessionmaker is not initialized")
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    with get_sessionmaker()() as db:
        yield db
