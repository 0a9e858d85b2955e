"""Database engine and session factory"""

from functools import lru_cache
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from prime_ledger.config import settings
from prime_ledger.infrastructure.database.models import Base


def create_db_engine(database_url: str) -> Engine:
    """Create an engine; SQLite gets a shared-thread connection, servers get a pool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create missing tables"""
    Base.metadata.create_all(bind=engine)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Session factory for the configured database, created on first use"""
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    return create_session_factory(engine)
