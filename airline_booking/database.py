"""
Database engine and session management.

SQLite is the default so the service runs without external infrastructure;
any SQLAlchemy URL (PostgreSQL, MySQL) can be supplied through DATABASE_URL.
"""

import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from airline_booking.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create an engine, with the connect args SQLite needs for threaded use"""
    url = database_url or settings.DATABASE_URL
    kwargs = {"echo": echo, "future": True}

    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url == "sqlite://":
            # a single shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    logger.info("Creating database engine for %s", url.split("@")[-1])
    return create_engine(url, **kwargs)


engine = build_engine(echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind: Optional[Engine] = None) -> None:
    # models must be imported so their tables are registered on Base.metadata
    from airline_booking import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
