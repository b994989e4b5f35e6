"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support for PostgreSQL.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import InvalidIdError

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


def new_id() -> str:
    """Primary key generator shared by all tables (32 hex characters)."""
    return uuid.uuid4().hex


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def utcnow() -> datetime:
    """Server clock used for every stamped column."""
    return datetime.now(timezone.utc)


def parse_id(value: str, resource: str = "parcel") -> str:
    """
    Validate an identifier taken from a path or body.

    Raises:
        InvalidIdError: value is not a UUID (hex or hyphenated)
    """
    try:
        return uuid.UUID(hex=value).hex
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdError(f"Invalid {resource} ID")
