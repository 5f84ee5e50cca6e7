"""Engine and per-request session handling"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from benefits_gateway.config import settings


def build_engine(database_url: str) -> Engine:
    """SQLite gets a thread-shareable connection, anything else a pooled one"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Pool of up to 20 connections, recycled hourly, checked before use
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Yield a session per request; callers commit or roll back themselves"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
