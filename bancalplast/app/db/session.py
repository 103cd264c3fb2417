"""
Database engine and session factory construction.

The engine is built from an explicit StoreConfig at startup instead of at
import time, so nothing here reads the environment.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

# Create declarative base for models
Base = declarative_base()


def create_engine_for(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine for a SQLAlchemy URL."""
    return create_async_engine(url, echo=echo, future=True, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the async session factory used by SqlRecordStore."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables registered on Base (idempotent)."""
    # Register models with Base before create_all
    from bancalplast.app.models import pallet, trip  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
