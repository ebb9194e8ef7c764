"""Async SQLAlchemy engine, session factory and declarative base."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from chatbilling.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; commits on success, rolls back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def committed_savepoint(session: AsyncSession) -> Callable[[], AbstractAsyncContextManager]:
    """
    Scope factory for batch jobs: each unit of work runs in a savepoint and
    is committed as soon as it finishes. A failing unit rolls back only its
    own savepoint and nothing is committed for it.
    """

    @asynccontextmanager
    async def scope():
        async with session.begin_nested():
            yield
        await session.commit()

    return scope
