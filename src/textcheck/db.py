"""Database connection and session management."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for one service database."""
    if database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return create_async_engine(database_url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine, base: type[DeclarativeBase]) -> None:
    """Create the tables owned by one service."""
    async with engine.begin() as conn:
        await conn.run_sync(base.metadata.create_all)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions from the app's factory."""
    async with request.app.state.session_factory() as session:
        yield session
