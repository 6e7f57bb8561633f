"""Database engine and session management.

The engine is created only after the connection parameters have been
validated, so an unconfigured application never touches storage.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

engine: Engine | None = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def init_engine(service_url: str) -> Engine:
    """Create the engine for ``service_url`` and bind the session factory to it."""
    global engine
    connect_args: dict[str, bool] = {"check_same_thread": False} if service_url.startswith("sqlite") else {}
    engine = create_engine(service_url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    return engine


def dispose_engine() -> None:
    global engine
    if engine is not None:
        engine.dispose()
    engine = None


def get_session_factory() -> sessionmaker:
    """Return the current session factory (tests may swap it)."""
    return SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
